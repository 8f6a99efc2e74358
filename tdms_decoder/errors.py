"""Decode error kinds.

Every failure raised while decoding a file derives from :class:`TdmsError`
and carries the byte offset where the problem was detected (``position``)
and, where meaningful, the offending value (``value``).

Data errors also derive from ``ValueError`` and the unsupported-feature
error from ``NotImplementedError`` so that generic callers can still catch
them by the builtin category.
"""

from __future__ import annotations

from typing import Any, Optional


class TdmsError(Exception):
    """Base class of all decode failures."""

    def __init__(self, message: str, *, position: Optional[int] = None, value: Any = None) -> None:
        self.message = message
        self.position = position
        self.value = value
        super().__init__(self._format())

    def _format(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at byte offset {self.position})"


class TdmsIoError(TdmsError, OSError):
    """The underlying byte source raised while reading or seeking."""


class TruncatedInputError(TdmsError, ValueError):
    """Fewer bytes were available than a field requires."""


class InvalidSegmentHeaderError(TdmsError, ValueError):
    """The 4-byte segment signature did not match."""


class NotImplementedFeatureError(TdmsError, NotImplementedError):
    """A recognised wire feature that this decoder does not support."""


class MissingPreviousIndexError(TdmsError, ValueError):
    """'Matches previous' raw data index used before any shape was defined."""


class UnknownTypeError(TdmsError, ValueError):
    """Unrecognised data type code."""


class InvalidDimensionError(TdmsError, ValueError):
    """Raw data index dimension other than 1."""


class CorruptSegmentError(TdmsError, ValueError):
    """Segment offsets or raw data span are inconsistent."""


class InvalidStringError(TdmsError, ValueError):
    """A length-prefixed string was not valid UTF-8."""


class InvalidObjectPathError(TdmsError, ValueError):
    """An object path is not of the form /'Group'/'Channel'."""
