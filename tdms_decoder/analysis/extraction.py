"""Sample extraction from a decoded index.

This is the only place that interprets raw sample bytes. It uses the segment
list and shape records of a :class:`~tdms_decoder.models.index.TdmsIndex`
and never re-parses metadata.

Layout of one segment's raw data region (contiguous mode):

    data_position
    | chunk 0: [obj A data_size][obj B data_size]... | chunk 1: ... | ...

Each object's bytes inside a chunk start at the sum of the data sizes of the
data-carrying objects declared before it. In interleaved mode the values of
all objects alternate inside a chunk, one row per value index.
"""

from __future__ import annotations

from typing import BinaryIO, Iterator, List

import numpy as np

from tdms_decoder.errors import (
    CorruptSegmentError,
    InvalidStringError,
    NotImplementedFeatureError,
)
from tdms_decoder.ingest.binary import BinaryReader
from tdms_decoder.models.index import PathOrId, TdmsIndex
from tdms_decoder.models.segments import ChunkLayout, RawDataIndex, TdmsSegment, compute_chunk_layout
from tdms_decoder.models.types import TypeTag, timestamps_to_datetime64


def result_dtype(data_type: TypeTag) -> np.dtype:
    """dtype of the arrays returned for samples of this type."""
    if data_type == TypeTag.STRING:
        return np.dtype(object)
    if data_type == TypeTag.TIMESTAMP:
        return np.dtype("datetime64[us]")
    dtype = data_type.numpy_dtype
    if dtype is None:
        raise NotImplementedFeatureError(
            f"Samples of type {data_type.name} cannot be decoded", value=int(data_type)
        )
    return dtype


def decode_raw_block(data: bytes, raw_index: RawDataIndex, position: int = 0) -> np.ndarray:
    """Decode one object's raw bytes from a single chunk."""
    data_type = raw_index.data_type
    n = raw_index.number_of_values

    if data_type == TypeTag.STRING:
        return _decode_strings(data, n, position)
    if data_type == TypeTag.TIMESTAMP:
        raw = np.frombuffer(data, dtype=data_type.numpy_dtype, count=n)
        return timestamps_to_datetime64(raw["seconds"], raw["second_fractions"])

    dtype = result_dtype(data_type)
    return np.frombuffer(data, dtype=dtype, count=n)


def _decode_strings(data: bytes, n: int, position: int) -> np.ndarray:
    # n little-endian u32 end offsets, then the concatenated UTF-8 payload.
    header = 4 * n
    if len(data) < header:
        raise CorruptSegmentError(
            f"String block of {len(data)} bytes too short for {n} offsets", position=position, value=len(data)
        )
    ends = np.frombuffer(data, dtype="<u4", count=n)
    payload = data[header:]
    out = np.empty(n, dtype=object)
    start = 0
    for i, end in enumerate(ends.tolist()):
        if end < start or end > len(payload):
            raise CorruptSegmentError(
                f"String end offset {end} out of range (start={start}, payload={len(payload)})",
                position=position,
                value=end,
            )
        try:
            out[i] = payload[start:end].decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidStringError(
                f"String sample {i} is not valid UTF-8: {e.reason}", position=position + header + start
            ) from None
        start = end
    return out


class SampleExtractor:
    """
    Reads an object's samples across all segments that carry data for it.

    The extractor only reads from source; the index is never modified. For
    parallel extraction use one extractor (and one source handle) per thread.
    """

    def __init__(self, index: TdmsIndex, source: BinaryIO) -> None:
        self.index = index
        self.reader = BinaryReader(source)

    def chunk_layout(self, segment: TdmsSegment) -> ChunkLayout:
        return compute_chunk_layout(segment, self.index.raw_data_indexes)

    def iter_segment_samples(self, path: PathOrId) -> Iterator[np.ndarray]:
        """Yield one array per segment carrying data for path, in file order."""
        object_id = self.index.object_id(path)
        data_type = None
        for segment in self.index.segments:
            for pos, obj in enumerate(segment.objects):
                if obj.object_id != object_id or obj.raw_data_index is None:
                    continue
                raw_index = self.index.raw_data_indexes[obj.raw_data_index]
                if data_type is None:
                    data_type = raw_index.data_type
                elif raw_index.data_type != data_type:
                    raise CorruptSegmentError(
                        f"Object {self.index.object_paths.path_of(object_id)!r} changes data type "
                        f"from {data_type.name} to {raw_index.data_type.name}",
                        position=segment.position,
                        value=(data_type, raw_index.data_type),
                    )
                layout = self.chunk_layout(segment)
                if segment.is_interleaved:
                    yield self._read_interleaved(segment, layout, pos, raw_index)
                else:
                    yield self._read_contiguous(segment, layout, pos, raw_index)
                break

    def read_samples(self, path: PathOrId) -> np.ndarray:
        """All samples of path, concatenated in segment order."""
        parts = list(self.iter_segment_samples(path))
        if not parts:
            data_type = self.index.data_type(path)
            return np.empty(0, dtype=result_dtype(data_type) if data_type is not None else np.float64)
        if len(parts) == 1:
            return np.array(parts[0], copy=True)
        return np.concatenate(parts)

    def _read_contiguous(
        self,
        segment: TdmsSegment,
        layout: ChunkLayout,
        pos: int,
        raw_index: RawDataIndex,
    ) -> np.ndarray:
        offset = layout.offsets[pos]
        parts: List[np.ndarray] = []
        for chunk in range(layout.chunk_count):
            start = segment.data_position + chunk * layout.chunk_size + offset
            self.reader.seek(start)
            data = self.reader.read_bytes(raw_index.data_size)
            parts.append(decode_raw_block(data, raw_index, start))
        if not parts:
            return np.empty(0, dtype=result_dtype(raw_index.data_type))
        return np.concatenate(parts)

    def _read_interleaved(
        self,
        segment: TdmsSegment,
        layout: ChunkLayout,
        pos: int,
        raw_index: RawDataIndex,
    ) -> np.ndarray:
        data_objects = [
            self.index.raw_data_indexes[obj.raw_data_index]
            for obj in segment.objects
            if obj.raw_data_index is not None
        ]
        if any(not r.data_type.is_fixed_width for r in data_objects):
            raise NotImplementedFeatureError(
                "Interleaved segments with variable-width data are not supported",
                position=segment.position,
            )
        if len({r.number_of_values for r in data_objects}) > 1:
            raise NotImplementedFeatureError(
                "Interleaved segments with differing value counts are not supported",
                position=segment.position,
            )

        width = raw_index.data_type.width
        row_size = sum(r.data_type.width for r in data_objects)
        column = 0
        for obj in segment.objects[:pos]:
            if obj.raw_data_index is not None:
                column += self.index.raw_data_indexes[obj.raw_data_index].data_type.width

        parts: List[np.ndarray] = []
        for chunk in range(layout.chunk_count):
            start = segment.data_position + chunk * layout.chunk_size
            self.reader.seek(start)
            data = self.reader.read_bytes(layout.chunk_size)
            rows = np.frombuffer(data, dtype=np.uint8).reshape(-1, row_size)
            column_bytes = np.ascontiguousarray(rows[:, column:column + width]).tobytes()
            parts.append(decode_raw_block(column_bytes, raw_index, start))
        if not parts:
            return np.empty(0, dtype=result_dtype(raw_index.data_type))
        return np.concatenate(parts)
