from __future__ import annotations

import struct
from typing import Any, BinaryIO

import numpy as np

from tdms_decoder.errors import (
    InvalidStringError,
    NotImplementedFeatureError,
    TdmsIoError,
    TruncatedInputError,
)
from tdms_decoder.models.types import TypeTag, timestamps_to_datetime64

_U8 = struct.Struct("<B")
_I32 = struct.Struct("<i")
_U32 = struct.Struct("<I")
_I64 = struct.Struct("<q")
_U64 = struct.Struct("<Q")
_F32 = struct.Struct("<f")
_F64 = struct.Struct("<d")
_C64 = struct.Struct("<ff")
_C128 = struct.Struct("<dd")
_TIMESTAMP = struct.Struct("<Qq")

# Property value decoders keyed by type tag: struct plus post-processing.
_SCALARS = {
    TypeTag.I8: struct.Struct("<b"),
    TypeTag.I16: struct.Struct("<h"),
    TypeTag.I32: _I32,
    TypeTag.I64: _I64,
    TypeTag.U8: _U8,
    TypeTag.U16: struct.Struct("<H"),
    TypeTag.U32: _U32,
    TypeTag.U64: _U64,
    TypeTag.SINGLE_FLOAT: _F32,
    TypeTag.DOUBLE_FLOAT: _F64,
    TypeTag.SINGLE_FLOAT_WITH_UNIT: _F32,
    TypeTag.DOUBLE_FLOAT_WITH_UNIT: _F64,
}


class BinaryReader:
    """
    Little-endian field reader over a seekable byte source.

    Each call consumes exactly the width of its field. A short read raises
    TruncatedInputError; an OSError from the source is re-raised as TdmsIoError.
    """

    def __init__(self, source: BinaryIO) -> None:
        self.source = source

    def tell(self) -> int:
        try:
            return self.source.tell()
        except OSError as e:
            raise TdmsIoError(f"Cannot query stream position: {e}") from e

    def seek(self, position: int) -> None:
        try:
            self.source.seek(position)
        except OSError as e:
            raise TdmsIoError(f"Cannot seek: {e}", position=position) from e

    def read_available(self, n: int) -> bytes:
        """Read up to n bytes; fewer only at end of stream."""
        chunks = []
        remaining = n
        try:
            while remaining > 0:
                chunk = self.source.read(remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        except OSError as e:
            raise TdmsIoError(f"Read failed: {e}") from e
        return b"".join(chunks)

    def read_bytes(self, n: int) -> bytes:
        position = self.tell()
        data = self.read_available(n)
        if len(data) != n:
            raise TruncatedInputError(
                f"Expected {n} bytes, got {len(data)}", position=position, value=len(data)
            )
        return data

    def _unpack(self, fmt: struct.Struct) -> Any:
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i64(self) -> int:
        return self._unpack(_I64)

    def read_u64(self) -> int:
        return self._unpack(_U64)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_f64(self) -> float:
        return self._unpack(_F64)

    def read_string(self) -> str:
        length = self.read_u32()
        position = self.tell()
        raw = self.read_bytes(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidStringError(f"String is not valid UTF-8: {e.reason}", position=position) from None

    def read_timestamp(self) -> np.datetime64:
        fractions, seconds = _TIMESTAMP.unpack(self.read_bytes(_TIMESTAMP.size))
        return timestamps_to_datetime64(np.array([seconds]), np.array([fractions], dtype=np.uint64))[0]

    def read_value(self, data_type: TypeTag) -> Any:
        """Decode one type-tagged property value."""
        fmt = _SCALARS.get(data_type)
        if fmt is not None:
            return self._unpack(fmt)
        if data_type == TypeTag.STRING:
            return self.read_string()
        if data_type == TypeTag.BOOLEAN:
            return self.read_u8() != 0
        if data_type == TypeTag.TIMESTAMP:
            return self.read_timestamp()
        if data_type == TypeTag.COMPLEX_SINGLE_FLOAT:
            re, im = _C64.unpack(self.read_bytes(_C64.size))
            return complex(re, im)
        if data_type == TypeTag.COMPLEX_DOUBLE_FLOAT:
            re, im = _C128.unpack(self.read_bytes(_C128.size))
            return complex(re, im)
        if data_type == TypeTag.VOID:
            return None
        raise NotImplementedFeatureError(
            f"Property values of type {data_type.name} are not supported",
            position=self.tell(),
            value=int(data_type),
        )
