"""TDMS Decoder -- Python tooling for segmented streaming measurement files.

This package provides tools for:
- Walking a file segment by segment and validating each lead-in
- Decoding object lists, typed properties and raw data index shapes
- Resolving "matches previous" raw data index references across segments
- Locating and decoding a channel's samples from the produced index
- Presenting groups, channels and properties as pandas DataFrames

Key principles:
- Metadata is decoded once; sample reads never re-parse it
- No silent recovery: malformed or unsupported segments abort the decode
- Errors carry the byte offset where they were detected

Main subpackages:
- ingest: Binary primitives, path interning, raw data index table, segment decoder
- analysis: Sample extraction and DataFrame views
- models: Data models (TypeTag, TdmsSegment, RawDataIndex, TdmsIndex)
- validation: Synthetic file builder for reference inputs
"""

from .errors import (
    CorruptSegmentError,
    InvalidDimensionError,
    InvalidSegmentHeaderError,
    InvalidObjectPathError,
    InvalidStringError,
    MissingPreviousIndexError,
    NotImplementedFeatureError,
    TdmsError,
    TdmsIoError,
    TruncatedInputError,
    UnknownTypeError,
)
from .ingest.segment_decoder import DecoderConfig, SegmentDecoder, read_metadata
from .analysis.extraction import SampleExtractor
from .tdms_file import TdmsChannel, TdmsFile, TdmsGroup

__all__ = [
    "CorruptSegmentError",
    "InvalidDimensionError",
    "InvalidObjectPathError",
    "InvalidSegmentHeaderError",
    "InvalidStringError",
    "MissingPreviousIndexError",
    "NotImplementedFeatureError",
    "TdmsError",
    "TdmsIoError",
    "TruncatedInputError",
    "UnknownTypeError",
    "DecoderConfig",
    "SegmentDecoder",
    "read_metadata",
    "SampleExtractor",
    "TdmsChannel",
    "TdmsFile",
    "TdmsGroup",
]
