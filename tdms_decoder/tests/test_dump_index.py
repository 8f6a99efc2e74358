from __future__ import annotations

from pathlib import Path

from tdms_decoder.models.types import TypeTag
from tdms_decoder.validation.dump_index import main
from tdms_decoder.validation.synthetic import SegmentBuilder, build_file, encode_raw_data, encode_raw_data_index


def _write(tmp_path: Path, *, incomplete: bool = False) -> Path:
    s1 = SegmentBuilder()
    s1.add_object("/'G'/'X'", raw_index=encode_raw_data_index(TypeTag.U8, 2), properties=[("gain", TypeTag.I32, 3)])
    s1.add_data(encode_raw_data(TypeTag.U8, [10, 20]))
    s2 = SegmentBuilder(incomplete=incomplete)
    s2.add_object("/'G'/'X'", raw_index=encode_raw_data_index(TypeTag.U8, 1))
    s2.add_data(encode_raw_data(TypeTag.U8, [30]))
    p = tmp_path / "dump.tdms"
    p.write_bytes(build_file(s1, s2))
    return p


def test_dump_prints_segments_and_channels(tmp_path, capsys):
    rc = main([str(_write(tmp_path)), "--properties", "--samples", "2"])
    out = capsys.readouterr().out
    assert rc == 0
    assert "2 segments" in out
    assert "segment 1" in out
    assert "gain" in out
    assert "/'G'/'X'" in out


def test_dump_reports_incomplete_segment(tmp_path, capsys):
    p = _write(tmp_path, incomplete=True)
    assert main([str(p)]) == 0
    assert "WARNING:" in capsys.readouterr().out

    assert main([str(p), "--strict"]) == 1
    assert "ERROR: CorruptSegmentError" in capsys.readouterr().out


def test_dump_invalid_file(tmp_path, capsys):
    p = tmp_path / "junk.tdms"
    p.write_bytes(b"junkjunk")
    assert main([str(p)]) == 1
    assert "InvalidSegmentHeaderError" in capsys.readouterr().out


def test_dump_rejects_unquoted_object_path(tmp_path, capsys):
    seg = SegmentBuilder()
    seg.add_object("/Group/Chan", raw_index=encode_raw_data_index(TypeTag.U8, 1))
    seg.add_data(encode_raw_data(TypeTag.U8, [1]))
    p = tmp_path / "unquoted.tdms"
    p.write_bytes(seg.to_bytes())
    assert main([str(p)]) == 1
    assert "ERROR: InvalidObjectPathError" in capsys.readouterr().out


def test_dump_reports_type_change_while_reading_samples(tmp_path, capsys):
    s1 = SegmentBuilder()
    s1.add_object("/'G'/'X'", raw_index=encode_raw_data_index(TypeTag.U8, 1))
    s1.add_data(encode_raw_data(TypeTag.U8, [1]))
    s2 = SegmentBuilder()
    s2.add_object("/'G'/'X'", raw_index=encode_raw_data_index(TypeTag.DOUBLE_FLOAT, 1))
    s2.add_data(encode_raw_data(TypeTag.DOUBLE_FLOAT, [2.0]))
    p = tmp_path / "retyped.tdms"
    p.write_bytes(build_file(s1, s2))
    assert main([str(p), "--samples", "1"]) == 1
    assert "ERROR: CorruptSegmentError" in capsys.readouterr().out
