"""Segment-by-segment metadata decoder.

The decoder walks a seekable byte source from its current position, one
segment at a time: lead-in, object list, then a seek to the next segment.
Raw sample blocks are never read here; the produced
:class:`~tdms_decoder.models.index.TdmsIndex` records where they are.

Failure policy:
  - any malformed or unsupported segment aborts the whole decode
  - errors carry the byte offset where the problem was detected
  - nothing is retried or skipped internally
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from tdms_decoder.errors import (
    CorruptSegmentError,
    InvalidDimensionError,
    InvalidObjectPathError,
    InvalidSegmentHeaderError,
    MissingPreviousIndexError,
    NotImplementedFeatureError,
    TdmsIoError,
    TruncatedInputError,
)
from tdms_decoder.ingest.binary import BinaryReader
from tdms_decoder.ingest.object_paths import ObjectPathInterner, split_object_path
from tdms_decoder.ingest.raw_index import RawDataIndexCache, RawDataIndexTable
from tdms_decoder.models.index import TdmsIndex
from tdms_decoder.models.properties import Property, PropertyStore
from tdms_decoder.models.segments import (
    LEAD_IN_LENGTH,
    SEGMENT_SIGNATURE,
    RawDataIndex,
    SegmentObject,
    TdmsSegment,
    TocFlag,
)
from tdms_decoder.models.types import TypeTag

logger = logging.getLogger(__name__)

RAW_DATA_INDEX_NO_DATA = 0xFFFFFFFF
RAW_DATA_INDEX_MATCHES_PREVIOUS = 0x00000000
FORMAT_CHANGING_SCALER = 0x00001269
DIGITAL_LINE_SCALER = 0x0000126A

# Written by LabVIEW into next_segment_offset when it could not finalise the segment.
INCOMPLETE_SEGMENT_OFFSET = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class DecoderConfig:
    """
    Decoder configuration.

    allow_incomplete_final_segment:
      - True: a segment whose next-segment offset was never written is taken
        to extend to the end of the source and decoding stops after it
        (recorded in TdmsIndex.warnings).
      - False: such a segment is a CorruptSegmentError.
    max_segments:
      Stop after this many segments (None = read to end of source).
    """
    allow_incomplete_final_segment: bool = True
    max_segments: Optional[int] = None


@dataclass
class DecodeContext:
    """Session state threaded through every parsing step of one decode call."""
    object_paths: ObjectPathInterner = field(default_factory=ObjectPathInterner)
    raw_data_indexes: RawDataIndexTable = field(default_factory=RawDataIndexTable)
    raw_data_index_cache: RawDataIndexCache = field(default_factory=RawDataIndexCache)
    properties: PropertyStore = field(default_factory=PropertyStore)
    segments: List[TdmsSegment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_index(self) -> TdmsIndex:
        return TdmsIndex(
            segments=tuple(self.segments),
            object_paths=self.object_paths,
            raw_data_indexes=self.raw_data_indexes,
            properties=self.properties,
            warnings=tuple(self.warnings),
        )


class SegmentDecoder:
    def __init__(self, config: Optional[DecoderConfig] = None):
        self.config = config or DecoderConfig()

    def decode(self, source: BinaryIO) -> TdmsIndex:
        """Decode every segment from the source's current position to its end."""
        ctx = DecodeContext()
        reader = BinaryReader(source)
        source_size = _source_size(reader)
        max_segments = self.config.max_segments

        while True:
            position = reader.tell()
            if max_segments is not None and len(ctx.segments) >= max_segments:
                if position < source_size:
                    ctx.warnings.append(f"stopped after max_segments={max_segments} at byte offset {position}")
                break
            segment = self.read_segment(reader, position, source_size, ctx)
            if segment is None:
                break
            ctx.segments.append(segment)
            reader.seek(segment.next_segment_position)

        logger.debug("decoded %d segments, %d objects", len(ctx.segments), len(ctx.object_paths))
        return ctx.to_index()

    def read_segment(
        self,
        reader: BinaryReader,
        position: int,
        source_size: int,
        ctx: DecodeContext,
    ) -> Optional[TdmsSegment]:
        """Read one segment starting at position; None at a clean end of stream."""
        magic = reader.read_available(4)
        if not magic:
            return None
        if len(magic) < 4:
            raise TruncatedInputError(
                f"Expected 4 signature bytes, got {len(magic)}", position=position, value=magic
            )
        if magic != SEGMENT_SIGNATURE:
            raise InvalidSegmentHeaderError(
                f"Invalid segment header {magic!r}", position=position, value=magic
            )

        toc = TocFlag(reader.read_u32())
        version = reader.read_i32()
        next_segment_offset = reader.read_u64()
        raw_data_offset = reader.read_u64()

        if toc & TocFlag.BIG_ENDIAN:
            raise NotImplementedFeatureError(
                "Big-endian segments are not supported", position=position, value=int(toc)
            )

        if next_segment_offset == INCOMPLETE_SEGMENT_OFFSET:
            if not self.config.allow_incomplete_final_segment:
                raise CorruptSegmentError(
                    "Segment was not finalised (next segment offset unset)",
                    position=position,
                    value=next_segment_offset,
                )
            msg = f"segment at {position} was not finalised; assuming it extends to end of source ({source_size})"
            logger.warning("%s", msg)
            ctx.warnings.append(msg)
            next_segment_position = source_size
        else:
            next_segment_position = position + LEAD_IN_LENGTH + next_segment_offset
            if next_segment_position > source_size:
                raise TruncatedInputError(
                    f"Segment extends to byte {next_segment_position} but the source ends at {source_size}",
                    position=position,
                    value=next_segment_position,
                )
        data_position = position + LEAD_IN_LENGTH + raw_data_offset

        if data_position > next_segment_position:
            raise CorruptSegmentError(
                f"Raw data position {data_position} lies beyond next segment position {next_segment_position}",
                position=position,
                value=raw_data_offset,
            )

        logger.debug(
            "segment at %d: toc=0x%x version=%d next_segment_offset=%d raw_data_offset=%d",
            position, int(toc), version, next_segment_offset, raw_data_offset,
        )

        if not toc & TocFlag.META_DATA:
            raise NotImplementedFeatureError(
                "Segments without metadata are not supported", position=position, value=int(toc)
            )
        objects = self.read_object_list(reader, toc, position, ctx)
        metadata_end = reader.tell()
        if metadata_end > data_position:
            raise CorruptSegmentError(
                f"Segment metadata ends at {metadata_end}, past the raw data position {data_position}",
                position=position,
                value=metadata_end,
            )

        return TdmsSegment(
            data_position=data_position,
            next_segment_position=next_segment_position,
            objects=tuple(objects),
            position=position,
            toc=toc,
            version=version,
        )

    def read_object_list(
        self,
        reader: BinaryReader,
        toc: TocFlag,
        position: int,
        ctx: DecodeContext,
    ) -> List[SegmentObject]:
        if not toc & TocFlag.NEW_OBJ_LIST:
            raise NotImplementedFeatureError(
                "Incremental object lists are not supported", position=position, value=int(toc)
            )

        num_objects = reader.read_u32()
        objects: List[SegmentObject] = []
        for _ in range(num_objects):
            path_position = reader.tell()
            object_path = reader.read_string()
            if object_path not in ctx.object_paths:
                _check_object_path(object_path, path_position)
            object_id = ctx.object_paths.get_or_create_id(object_path)

            header_position = reader.tell()
            header = reader.read_u32()
            if header == RAW_DATA_INDEX_NO_DATA:
                obj = SegmentObject.no_data(object_id)
            elif header == RAW_DATA_INDEX_MATCHES_PREVIOUS:
                index_id = ctx.raw_data_index_cache.get(object_id)
                if index_id is None:
                    raise MissingPreviousIndexError(
                        f"Object {object_path!r} has no previous raw data index",
                        position=header_position,
                        value=object_path,
                    )
                obj = SegmentObject.with_data(object_id, index_id)
            elif header in (FORMAT_CHANGING_SCALER, DIGITAL_LINE_SCALER):
                raise NotImplementedFeatureError(
                    f"DAQmx scaler raw data index 0x{header:08X} for {object_path!r} is not supported",
                    position=header_position,
                    value=header,
                )
            else:
                # Any other value is the byte length of an inline raw data index.
                index_id = ctx.raw_data_indexes.alloc(read_raw_data_index(reader))
                ctx.raw_data_index_cache.set(object_id, index_id)
                obj = SegmentObject.with_data(object_id, index_id)
            objects.append(obj)

            num_properties = reader.read_u32()
            for _ in range(num_properties):
                ctx.properties.append(object_id, read_property(reader))
        return objects


def _check_object_path(path: str, position: int) -> None:
    try:
        parts = split_object_path(path)
    except ValueError as e:
        raise InvalidObjectPathError(str(e), position=position, value=path) from None
    if len(parts) > 2:
        raise InvalidObjectPathError(
            f"Object path has {len(parts)} levels, at most 2 are allowed: {path!r}", position=position, value=path
        )


def read_raw_data_index(reader: BinaryReader) -> RawDataIndex:
    type_position = reader.tell()
    data_type = TypeTag.from_code(reader.read_u32(), position=type_position)

    dimension_position = reader.tell()
    dimension = reader.read_u32()
    if dimension != 1:
        raise InvalidDimensionError(
            f"Dimension must be 1, got {dimension}", position=dimension_position, value=dimension
        )
    number_of_values = reader.read_u64()

    if data_type.width is not None:
        data_size = data_type.width * number_of_values
    elif data_type == TypeTag.STRING:
        data_size = reader.read_u64()
    else:
        raise NotImplementedFeatureError(
            f"Raw data of type {data_type.name} is not supported",
            position=type_position,
            value=int(data_type),
        )
    return RawDataIndex(data_type=data_type, number_of_values=number_of_values, data_size=data_size)


def read_property(reader: BinaryReader) -> Property:
    name = reader.read_string()
    type_position = reader.tell()
    data_type = TypeTag.from_code(reader.read_u32(), position=type_position)
    return Property(name=name, data_type=data_type, value=reader.read_value(data_type))


def read_metadata(source: BinaryIO, config: Optional[DecoderConfig] = None) -> TdmsIndex:
    """Decode the metadata of a whole file into a TdmsIndex."""
    return SegmentDecoder(config).decode(source)


def _source_size(reader: BinaryReader) -> int:
    here = reader.tell()
    try:
        end = reader.source.seek(0, io.SEEK_END)
    except OSError as e:
        raise TdmsIoError(f"Cannot seek to end of source: {e}") from e
    reader.seek(here)
    return end
