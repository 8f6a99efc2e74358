from __future__ import annotations

import enum
from typing import Optional

import numpy as np

from tdms_decoder.errors import UnknownTypeError


class TypeTag(enum.IntEnum):
    """
    Closed set of value encodings used for property values and raw samples.

    The integer value is the wire code. Widths are in bytes; ``None`` marks a
    variable-width kind whose byte length is carried inline.
    """

    VOID = 0x00
    I8 = 0x01
    I16 = 0x02
    I32 = 0x03
    I64 = 0x04
    U8 = 0x05
    U16 = 0x06
    U32 = 0x07
    U64 = 0x08
    SINGLE_FLOAT = 0x09
    DOUBLE_FLOAT = 0x0A
    EXTENDED_FLOAT = 0x0B
    SINGLE_FLOAT_WITH_UNIT = 0x19
    DOUBLE_FLOAT_WITH_UNIT = 0x1A
    EXTENDED_FLOAT_WITH_UNIT = 0x1B
    STRING = 0x20
    BOOLEAN = 0x21
    TIMESTAMP = 0x44
    FIXED_POINT = 0x4F
    COMPLEX_SINGLE_FLOAT = 0x08000C
    COMPLEX_DOUBLE_FLOAT = 0x10000D
    DAQMX_RAW_DATA = 0xFFFFFFFF

    @classmethod
    def from_code(cls, code: int, position: Optional[int] = None) -> "TypeTag":
        try:
            return cls(code)
        except ValueError:
            raise UnknownTypeError(
                f"Unknown data type code 0x{code:08X}", position=position, value=code
            ) from None

    @property
    def width(self) -> Optional[int]:
        return _WIDTHS.get(self)

    @property
    def is_fixed_width(self) -> bool:
        return self.width is not None

    @property
    def numpy_dtype(self) -> Optional[np.dtype]:
        """Little-endian dtype of one raw sample, or None when there is no direct mapping."""
        return _DTYPES.get(self)


_WIDTHS = {
    TypeTag.VOID: 0,
    TypeTag.I8: 1,
    TypeTag.I16: 2,
    TypeTag.I32: 4,
    TypeTag.I64: 8,
    TypeTag.U8: 1,
    TypeTag.U16: 2,
    TypeTag.U32: 4,
    TypeTag.U64: 8,
    TypeTag.SINGLE_FLOAT: 4,
    TypeTag.DOUBLE_FLOAT: 8,
    TypeTag.EXTENDED_FLOAT: 16,
    TypeTag.SINGLE_FLOAT_WITH_UNIT: 4,
    TypeTag.DOUBLE_FLOAT_WITH_UNIT: 8,
    TypeTag.EXTENDED_FLOAT_WITH_UNIT: 16,
    TypeTag.BOOLEAN: 1,
    TypeTag.TIMESTAMP: 16,
    TypeTag.COMPLEX_SINGLE_FLOAT: 8,
    TypeTag.COMPLEX_DOUBLE_FLOAT: 16,
}

# Raw timestamp layout: positive fractions of a second (2**-64 s), then seconds since 1904.
TIMESTAMP_DTYPE = np.dtype([("second_fractions", "<u8"), ("seconds", "<i8")])

_DTYPES = {
    TypeTag.I8: np.dtype("<i1"),
    TypeTag.I16: np.dtype("<i2"),
    TypeTag.I32: np.dtype("<i4"),
    TypeTag.I64: np.dtype("<i8"),
    TypeTag.U8: np.dtype("<u1"),
    TypeTag.U16: np.dtype("<u2"),
    TypeTag.U32: np.dtype("<u4"),
    TypeTag.U64: np.dtype("<u8"),
    TypeTag.SINGLE_FLOAT: np.dtype("<f4"),
    TypeTag.DOUBLE_FLOAT: np.dtype("<f8"),
    TypeTag.SINGLE_FLOAT_WITH_UNIT: np.dtype("<f4"),
    TypeTag.DOUBLE_FLOAT_WITH_UNIT: np.dtype("<f8"),
    TypeTag.BOOLEAN: np.dtype("?"),
    TypeTag.TIMESTAMP: TIMESTAMP_DTYPE,
    TypeTag.COMPLEX_SINGLE_FLOAT: np.dtype("<c8"),
    TypeTag.COMPLEX_DOUBLE_FLOAT: np.dtype("<c16"),
}

TDMS_EPOCH = np.datetime64("1904-01-01T00:00:00", "us")


def timestamps_to_datetime64(seconds: np.ndarray, second_fractions: np.ndarray) -> np.ndarray:
    """Convert (seconds since 1904, 2**-64 fractions) pairs to ``datetime64[us]``."""
    seconds = np.asarray(seconds, dtype=np.int64)
    # The top 32 bits of the fraction are enough at microsecond resolution.
    high = (np.asarray(second_fractions, dtype=np.uint64) >> np.uint64(32)).astype(np.int64)
    micros = (high * 1_000_000 + (1 << 31)) >> 32
    return TDMS_EPOCH + (seconds * 1_000_000 + micros).astype("timedelta64[us]")
