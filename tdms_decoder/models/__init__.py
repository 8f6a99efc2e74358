from .types import TypeTag
from .segments import ChunkLayout, RawDataIndex, SegmentObject, TdmsSegment, TocFlag
from .properties import Property, PropertyStore
from .index import TdmsIndex

__all__ = [
    "TypeTag",
    "ChunkLayout",
    "RawDataIndex",
    "SegmentObject",
    "TdmsSegment",
    "TocFlag",
    "Property",
    "PropertyStore",
    "TdmsIndex",
]
