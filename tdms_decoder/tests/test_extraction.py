"""Tests for sample extraction from decoded segments."""

from __future__ import annotations

import io
import struct

import numpy as np
import pytest

from tdms_decoder.analysis.extraction import SampleExtractor, decode_raw_block
from tdms_decoder.errors import CorruptSegmentError, NotImplementedFeatureError
from tdms_decoder.ingest.segment_decoder import read_metadata
from tdms_decoder.models.segments import RawDataIndex, TocFlag
from tdms_decoder.models.types import TypeTag
from tdms_decoder.validation.synthetic import (
    DEFAULT_TOC,
    MATCHES_PREVIOUS,
    NO_DATA,
    SegmentBuilder,
    build_file,
    encode_raw_data,
    encode_raw_data_index,
    string_data_size,
)

CHAN_A = "/'Group'/'A'"
CHAN_B = "/'Group'/'B'"
CHAN_C = "/'Group'/'C'"


def _extractor(data: bytes) -> SampleExtractor:
    stream = io.BytesIO(data)
    index = read_metadata(stream)
    return SampleExtractor(index, stream)


# -----------------------------------------------------------------------
# Contiguous layout
# -----------------------------------------------------------------------


def test_single_float_channel() -> None:
    seg = SegmentBuilder(toc=TocFlag.META_DATA | TocFlag.NEW_OBJ_LIST)
    seg.add_object("/'Group'/'Chan1'", raw_index=encode_raw_data_index(TypeTag.SINGLE_FLOAT, 4))
    seg.add_data(encode_raw_data(TypeTag.SINGLE_FLOAT, [1.0, 2.0, 3.0, 4.0]))
    ex = _extractor(seg.to_bytes())

    out = ex.read_samples("/'Group'/'Chan1'")
    assert out.dtype == np.dtype("<f4")
    np.testing.assert_array_equal(out, np.array([1.0, 2.0, 3.0, 4.0], dtype=np.float32))


def test_samples_concatenate_across_segments() -> None:
    s1 = SegmentBuilder()
    s1.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.I32, 2))
    s1.add_data(encode_raw_data(TypeTag.I32, [1, 2]))
    s2 = SegmentBuilder()
    s2.add_object(CHAN_A, raw_index=MATCHES_PREVIOUS)
    s2.add_data(encode_raw_data(TypeTag.I32, [3, 4]))
    s3 = SegmentBuilder()
    s3.add_object(CHAN_A, raw_index=NO_DATA, properties=[("note", TypeTag.STRING, "pause")])
    s4 = SegmentBuilder()
    s4.add_object(CHAN_A, raw_index=MATCHES_PREVIOUS)
    s4.add_data(encode_raw_data(TypeTag.I32, [5, 6]))
    ex = _extractor(build_file(s1, s2, s3, s4))

    np.testing.assert_array_equal(ex.read_samples(CHAN_A), [1, 2, 3, 4, 5, 6])
    assert [len(p) for p in ex.iter_segment_samples(CHAN_A)] == [2, 2, 2]
    assert ex.index.sample_count(CHAN_A) == 6


def test_multiple_chunks_and_object_offsets() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.I32, 2))
    seg.add_object(CHAN_C, raw_index=NO_DATA)
    seg.add_object(CHAN_B, raw_index=encode_raw_data_index(TypeTag.DOUBLE_FLOAT, 1))
    for a, b in [([1, 2], [0.5]), ([3, 4], [1.5]), ([5, 6], [2.5])]:
        seg.add_data(encode_raw_data(TypeTag.I32, a) + encode_raw_data(TypeTag.DOUBLE_FLOAT, b))
    ex = _extractor(seg.to_bytes())

    layout = ex.chunk_layout(ex.index.segments[0])
    assert layout.chunk_size == 16
    assert layout.chunk_count == 3
    assert layout.offsets == (0, None, 8)

    np.testing.assert_array_equal(ex.read_samples(CHAN_A), [1, 2, 3, 4, 5, 6])
    np.testing.assert_array_equal(ex.read_samples(CHAN_B), [0.5, 1.5, 2.5])
    assert ex.index.sample_count(CHAN_B) == 3


def test_object_without_data_gives_empty_array() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_C, raw_index=NO_DATA)
    ex = _extractor(seg.to_bytes())
    out = ex.read_samples(CHAN_C)
    assert out.shape == (0,)
    assert ex.index.sample_count(CHAN_C) == 0


def test_unknown_path_raises_key_error() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=NO_DATA)
    ex = _extractor(seg.to_bytes())
    with pytest.raises(KeyError):
        ex.read_samples("/'Group'/'nope'")


def test_span_not_multiple_of_chunk_size() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.SINGLE_FLOAT, 4))
    seg.add_data(encode_raw_data(TypeTag.SINGLE_FLOAT, [1.0, 2.0, 3.0, 4.0]) + b"\x00")
    ex = _extractor(seg.to_bytes())
    with pytest.raises(CorruptSegmentError) as ei:
        ex.read_samples(CHAN_A)
    assert ei.value.value == 17


def test_extraction_does_not_change_index() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.U16, 3))
    seg.add_data(encode_raw_data(TypeTag.U16, [7, 8, 9]))
    ex = _extractor(seg.to_bytes())
    before = (ex.index.segments, len(ex.index.raw_data_indexes), ex.index.paths())
    ex.read_samples(CHAN_A)
    ex.read_samples(CHAN_A)
    assert (ex.index.segments, len(ex.index.raw_data_indexes), ex.index.paths()) == before


# -----------------------------------------------------------------------
# Value kinds
# -----------------------------------------------------------------------


def test_string_samples() -> None:
    values = ["alpha", "", "βeta"]
    seg = SegmentBuilder()
    seg.add_object(
        CHAN_A,
        raw_index=encode_raw_data_index(TypeTag.STRING, len(values), data_size=string_data_size(values)),
    )
    seg.add_data(encode_raw_data(TypeTag.STRING, values))
    seg.add_data(encode_raw_data(TypeTag.STRING, ["gamma", "", "delta"]))
    ex = _extractor(seg.to_bytes())
    out = ex.read_samples(CHAN_A)
    assert out.dtype == object
    assert list(out) == ["alpha", "", "βeta", "gamma", "", "delta"]


def test_string_offsets_out_of_range() -> None:
    raw_index = RawDataIndex(TypeTag.STRING, 2, 10)
    data = struct.pack("<II", 1, 9) + b"ab"
    with pytest.raises(CorruptSegmentError):
        decode_raw_block(data, raw_index, position=100)


def test_timestamp_samples() -> None:
    stamps = [
        np.datetime64("1904-01-01T00:00:00.000000", "us"),
        np.datetime64("2023-07-14T09:30:15.123456", "us"),
    ]
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.TIMESTAMP, 2))
    seg.add_data(encode_raw_data(TypeTag.TIMESTAMP, stamps))
    ex = _extractor(seg.to_bytes())
    out = ex.read_samples(CHAN_A)
    assert out.dtype == np.dtype("datetime64[us]")
    np.testing.assert_array_equal(out, np.array(stamps, dtype="datetime64[us]"))


def test_boolean_samples() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.BOOLEAN, 3))
    seg.add_data(bytes([1, 0, 1]))
    ex = _extractor(seg.to_bytes())
    assert ex.read_samples(CHAN_A).tolist() == [True, False, True]


def test_extended_float_samples_not_decoded() -> None:
    seg = SegmentBuilder()
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.EXTENDED_FLOAT, 1))
    seg.add_data(b"\x00" * 16)
    ex = _extractor(seg.to_bytes())
    with pytest.raises(NotImplementedFeatureError):
        ex.read_samples(CHAN_A)


# -----------------------------------------------------------------------
# Interleaved layout
# -----------------------------------------------------------------------


def test_interleaved_columns() -> None:
    seg = SegmentBuilder(toc=DEFAULT_TOC | TocFlag.INTERLEAVED_DATA)
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.I16, 3))
    seg.add_object(CHAN_B, raw_index=encode_raw_data_index(TypeTag.SINGLE_FLOAT, 3))
    rows = [(1, 0.25), (2, 0.5), (3, 0.75)]
    seg.add_data(b"".join(struct.pack("<hf", a, b) for a, b in rows))
    ex = _extractor(seg.to_bytes())

    np.testing.assert_array_equal(ex.read_samples(CHAN_A), [1, 2, 3])
    np.testing.assert_array_equal(ex.read_samples(CHAN_B), np.array([0.25, 0.5, 0.75], dtype=np.float32))


def test_interleaved_strings_not_supported() -> None:
    seg = SegmentBuilder(toc=DEFAULT_TOC | TocFlag.INTERLEAVED_DATA)
    seg.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.STRING, 1, data_size=5))
    seg.add_data(encode_raw_data(TypeTag.STRING, ["a"]))
    ex = _extractor(seg.to_bytes())
    with pytest.raises(NotImplementedFeatureError):
        ex.read_samples(CHAN_A)


# -----------------------------------------------------------------------
# Shape changes between segments
# -----------------------------------------------------------------------


def test_data_type_change_between_segments() -> None:
    s1 = SegmentBuilder()
    s1.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.TIMESTAMP, 1))
    s1.add_data(encode_raw_data(TypeTag.TIMESTAMP, [np.datetime64("2020-01-01T00:00:00", "us")]))
    s2 = SegmentBuilder()
    s2.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.DOUBLE_FLOAT, 1))
    s2.add_data(encode_raw_data(TypeTag.DOUBLE_FLOAT, [1.5]))
    ex = _extractor(build_file(s1, s2))

    with pytest.raises(CorruptSegmentError) as ei:
        ex.read_samples(CHAN_A)
    assert ei.value.position == len(s1.to_bytes())
    assert ei.value.value == (TypeTag.TIMESTAMP, TypeTag.DOUBLE_FLOAT)


def test_value_count_change_between_segments_is_allowed() -> None:
    s1 = SegmentBuilder()
    s1.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.U8, 2))
    s1.add_data(bytes([1, 2]))
    s2 = SegmentBuilder()
    s2.add_object(CHAN_A, raw_index=encode_raw_data_index(TypeTag.U8, 3))
    s2.add_data(bytes([3, 4, 5]))
    ex = _extractor(build_file(s1, s2))
    np.testing.assert_array_equal(ex.read_samples(CHAN_A), [1, 2, 3, 4, 5])
