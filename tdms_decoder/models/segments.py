from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from tdms_decoder.errors import CorruptSegmentError
from tdms_decoder.models.types import TypeTag

ObjectPathId = int
RawDataIndexId = int

SEGMENT_SIGNATURE = b"TDSm"
LEAD_IN_LENGTH = 28


class TocFlag(enum.IntFlag):
    """Table-of-contents bits of a segment lead-in."""

    NONE = 0
    META_DATA = 1 << 1
    NEW_OBJ_LIST = 1 << 2
    RAW_DATA = 1 << 3
    INTERLEAVED_DATA = 1 << 5
    BIG_ENDIAN = 1 << 6
    DAQMX_RAW_DATA = 1 << 7


@dataclass(frozen=True)
class RawDataIndex:
    """
    Shape of one object's samples inside a single chunk.

    data_size is the byte length of those samples: width * number_of_values for
    fixed-width types, the inline-encoded length for strings.
    """
    data_type: TypeTag
    number_of_values: int
    data_size: int


@dataclass(frozen=True)
class SegmentObject:
    object_id: ObjectPathId
    raw_data_index: Optional[RawDataIndexId] = None

    @classmethod
    def no_data(cls, object_id: ObjectPathId) -> "SegmentObject":
        return cls(object_id, None)

    @classmethod
    def with_data(cls, object_id: ObjectPathId, raw_data_index: RawDataIndexId) -> "SegmentObject":
        return cls(object_id, raw_data_index)

    @property
    def has_data(self) -> bool:
        return self.raw_data_index is not None


@dataclass(frozen=True)
class TdmsSegment:
    """
    One physical block of a file, as found by the decode scan.

    Notes
    - data_position and next_segment_position are absolute byte offsets.
    - objects keeps the declaration order of the segment metadata; raw data
      blocks inside a chunk follow that order.
    """
    data_position: int
    next_segment_position: int
    objects: Tuple[SegmentObject, ...]
    position: int
    toc: TocFlag
    version: int

    @property
    def has_raw_data(self) -> bool:
        return bool(self.toc & TocFlag.RAW_DATA)

    @property
    def is_interleaved(self) -> bool:
        return bool(self.toc & TocFlag.INTERLEAVED_DATA)

    @property
    def data_span(self) -> int:
        return self.next_segment_position - self.data_position

    def find(self, object_id: ObjectPathId) -> Optional[SegmentObject]:
        for obj in self.objects:
            if obj.object_id == object_id:
                return obj
        return None


@dataclass(frozen=True)
class ChunkLayout:
    """
    Repetition unit of a segment's raw data region.

    offsets[i] is the byte offset of objects[i] inside one chunk, or None
    when that object carries no data in the segment.
    """
    chunk_size: int
    chunk_count: int
    offsets: Tuple[Optional[int], ...]


def compute_chunk_layout(segment: TdmsSegment, raw_data_indexes: Sequence[RawDataIndex]) -> ChunkLayout:
    """Derive chunk size, chunk count and per-object offsets for one segment."""
    offsets = []
    chunk_size = 0
    for obj in segment.objects:
        if obj.raw_data_index is None:
            offsets.append(None)
            continue
        offsets.append(chunk_size)
        chunk_size += raw_data_indexes[obj.raw_data_index].data_size

    if chunk_size == 0:
        return ChunkLayout(chunk_size=chunk_size, chunk_count=0, offsets=tuple(offsets))

    span = segment.data_span
    if span < 0:
        raise CorruptSegmentError(
            f"Raw data starts after the next segment ({segment.data_position} > {segment.next_segment_position})",
            position=segment.position,
            value=span,
        )
    if span % chunk_size != 0:
        raise CorruptSegmentError(
            f"Raw data span of {span} bytes is not a multiple of the chunk size {chunk_size}",
            position=segment.data_position,
            value=span,
        )
    return ChunkLayout(chunk_size=chunk_size, chunk_count=span // chunk_size, offsets=tuple(offsets))
