"""Synthetic segment builder.

Produces byte-exact segments for reference inputs: known channels, known
values, and deliberately malformed variants (bad dimension, unknown type,
scaler index headers, truncated lead-ins) for negative checks.

Examples
--------
>>> from tdms_decoder.models.types import TypeTag
>>> seg = SegmentBuilder()
>>> _ = seg.add_object("/'Group'/'Chan1'", raw_index=encode_raw_data_index(TypeTag.SINGLE_FLOAT, 4))
>>> _ = seg.add_data(encode_raw_data(TypeTag.SINGLE_FLOAT, [1.0, 2.0, 3.0, 4.0]))
>>> len(seg.to_bytes())
92
"""

from __future__ import annotations

import struct
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from tdms_decoder.models.segments import LEAD_IN_LENGTH, SEGMENT_SIGNATURE, TocFlag
from tdms_decoder.models.types import TDMS_EPOCH, TypeTag

NO_DATA = struct.pack("<I", 0xFFFFFFFF)
MATCHES_PREVIOUS = struct.pack("<I", 0x00000000)
FORMAT_CHANGING_SCALER = struct.pack("<I", 0x00001269)
DIGITAL_LINE_SCALER = struct.pack("<I", 0x0000126A)

DEFAULT_TOC = TocFlag.META_DATA | TocFlag.NEW_OBJ_LIST | TocFlag.RAW_DATA
DEFAULT_VERSION = 4713

_SCALAR_FORMATS = {
    TypeTag.I8: "<b",
    TypeTag.I16: "<h",
    TypeTag.I32: "<i",
    TypeTag.I64: "<q",
    TypeTag.U8: "<B",
    TypeTag.U16: "<H",
    TypeTag.U32: "<I",
    TypeTag.U64: "<Q",
    TypeTag.SINGLE_FLOAT: "<f",
    TypeTag.DOUBLE_FLOAT: "<d",
    TypeTag.SINGLE_FLOAT_WITH_UNIT: "<f",
    TypeTag.DOUBLE_FLOAT_WITH_UNIT: "<d",
}


def encode_string(s: str) -> bytes:
    raw = s.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def encode_timestamp(value: np.datetime64) -> bytes:
    micros = int((np.datetime64(value, "us") - TDMS_EPOCH).astype(np.int64))
    seconds, rem = divmod(micros, 1_000_000)
    fractions = (rem << 64) // 1_000_000
    return struct.pack("<Qq", fractions, seconds)


def encode_value(data_type: TypeTag, value: Any) -> bytes:
    fmt = _SCALAR_FORMATS.get(data_type)
    if fmt is not None:
        return struct.pack(fmt, value)
    if data_type == TypeTag.STRING:
        return encode_string(value)
    if data_type == TypeTag.BOOLEAN:
        return struct.pack("<B", 1 if value else 0)
    if data_type == TypeTag.TIMESTAMP:
        return encode_timestamp(value)
    if data_type == TypeTag.COMPLEX_SINGLE_FLOAT:
        return struct.pack("<ff", value.real, value.imag)
    if data_type == TypeTag.COMPLEX_DOUBLE_FLOAT:
        return struct.pack("<dd", value.real, value.imag)
    raise ValueError(f"cannot encode values of type {data_type.name}")


def encode_property(name: str, data_type: TypeTag, value: Any) -> bytes:
    return encode_string(name) + struct.pack("<I", int(data_type)) + encode_value(data_type, value)


def encode_raw_data_index(
    data_type: TypeTag,
    number_of_values: int,
    *,
    data_size: Optional[int] = None,
    dimension: int = 1,
    type_code: Optional[int] = None,
) -> bytes:
    """
    Inline raw data index, including its leading length header.

    data_size is only written for strings (total byte length of the block).
    type_code overrides the written type code (for unknown-type checks).
    """
    code = int(data_type) if type_code is None else type_code
    body = struct.pack("<IIQ", code, dimension, number_of_values)
    if data_type == TypeTag.STRING:
        body += struct.pack("<Q", data_size if data_size is not None else 0)
    return struct.pack("<I", 4 + len(body)) + body


def encode_raw_data(data_type: TypeTag, values: Sequence[Any]) -> bytes:
    """Raw sample block of one object for one chunk."""
    if data_type == TypeTag.STRING:
        payload = b""
        ends = []
        for v in values:
            payload += v.encode("utf-8")
            ends.append(len(payload))
        return struct.pack(f"<{len(ends)}I", *ends) + payload
    if data_type == TypeTag.TIMESTAMP:
        return b"".join(encode_timestamp(v) for v in values)
    return b"".join(encode_value(data_type, v) for v in values)


def string_data_size(values: Sequence[str]) -> int:
    return len(encode_raw_data(TypeTag.STRING, values))


class SegmentBuilder:
    """Accumulates object metadata and raw data, then emits one segment."""

    def __init__(
        self,
        toc: TocFlag = DEFAULT_TOC,
        version: int = DEFAULT_VERSION,
        *,
        incomplete: bool = False,
        signature: bytes = SEGMENT_SIGNATURE,
    ) -> None:
        self.toc = toc
        self.version = version
        self.incomplete = incomplete
        self.signature = signature
        self._objects: List[Tuple[str, bytes, List[bytes]]] = []
        self._data: List[bytes] = []

    def add_object(
        self,
        path: str,
        raw_index: bytes = NO_DATA,
        properties: Sequence[Tuple[str, TypeTag, Any]] = (),
    ) -> "SegmentBuilder":
        props = [encode_property(name, data_type, value) for name, data_type, value in properties]
        self._objects.append((path, raw_index, props))
        return self

    def add_data(self, data: bytes) -> "SegmentBuilder":
        self._data.append(data)
        return self

    def metadata_bytes(self) -> bytes:
        out = [struct.pack("<I", len(self._objects))]
        for path, raw_index, props in self._objects:
            out.append(encode_string(path))
            out.append(raw_index)
            out.append(struct.pack("<I", len(props)))
            out.extend(props)
        return b"".join(out)

    def to_bytes(self) -> bytes:
        meta = self.metadata_bytes() if self.toc & TocFlag.META_DATA else b""
        data = b"".join(self._data)
        raw_data_offset = len(meta)
        next_segment_offset = 0xFFFFFFFFFFFFFFFF if self.incomplete else len(meta) + len(data)
        lead_in = self.signature + struct.pack(
            "<IiQQ", int(self.toc), self.version, next_segment_offset, raw_data_offset
        )
        assert len(lead_in) == LEAD_IN_LENGTH
        return lead_in + meta + data


def build_file(*segments: SegmentBuilder) -> bytes:
    return b"".join(s.to_bytes() for s in segments)
