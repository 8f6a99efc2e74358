from __future__ import annotations

from typing import Iterator, List, Optional

from tdms_decoder.models.segments import ObjectPathId, RawDataIndex, RawDataIndexId


class RawDataIndexTable:
    """
    Arena of decoded shape records.

    Segments reference records by id, so an object that keeps the same layout
    across many segments shares one record.
    """

    def __init__(self) -> None:
        self._records: List[RawDataIndex] = []

    def alloc(self, record: RawDataIndex) -> RawDataIndexId:
        self._records.append(record)
        return len(self._records) - 1

    def get(self, index_id: RawDataIndexId) -> RawDataIndex:
        return self._records[index_id]

    __getitem__ = get

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RawDataIndex]:
        return iter(self._records)


class RawDataIndexCache:
    """Most recently defined shape per object, indexed directly by object id."""

    def __init__(self) -> None:
        self._prev: List[Optional[RawDataIndexId]] = []

    def set(self, object_id: ObjectPathId, index_id: RawDataIndexId) -> None:
        if object_id < 0:
            raise IndexError(f"object id must be >= 0, got {object_id}")
        missing = object_id + 1 - len(self._prev)
        if missing > 0:
            self._prev.extend([None] * missing)
        self._prev[object_id] = index_id

    def get(self, object_id: ObjectPathId) -> Optional[RawDataIndexId]:
        if object_id < 0:
            raise IndexError(f"object id must be >= 0, got {object_id}")
        if object_id >= len(self._prev):
            return None
        return self._prev[object_id]

    def __len__(self) -> int:
        return len(self._prev)
