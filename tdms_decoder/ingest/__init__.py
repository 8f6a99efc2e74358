"""Ingest package - binary decoding of segmented measurement files.

This package handles:
- Fixed-width little-endian field reads and length-prefixed strings
- Interning of hierarchical object paths to dense integer ids
- The raw-data-index arena and its "matches previous" reuse cache
- Walking the file segment by segment and building the index

Key classes:
- BinaryReader: Primitive field reader over a seekable byte source
- ObjectPathInterner: Path string <-> ObjectPathId mapping
- RawDataIndexTable / RawDataIndexCache: Shape records and reuse lookup
- SegmentDecoder: Produces a TdmsIndex from a byte source

Design principle:
- Decoding reads metadata only; raw sample blocks are located, never read
- Any malformed or unsupported segment aborts the whole decode
- All session state lives in one DecodeContext per decode call
"""
