from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple, Union

from tdms_decoder.ingest.object_paths import split_object_path
from tdms_decoder.models.properties import Property, PropertyStore
from tdms_decoder.models.segments import (
    ObjectPathId,
    RawDataIndex,
    TdmsSegment,
    compute_chunk_layout,
)
from tdms_decoder.models.types import TypeTag

if TYPE_CHECKING:
    from tdms_decoder.ingest.object_paths import ObjectPathInterner
    from tdms_decoder.ingest.raw_index import RawDataIndexTable

PathOrId = Union[str, ObjectPathId]


@dataclass(frozen=True)
class TdmsIndex:
    """
    Decode output: everything needed to list objects and extract samples later
    without re-scanning the file.

    Notes
    - segments are in file order; that order is the only ordering guarantee
      for sample reconstruction.
    - warnings holds non-fatal diagnostics collected while decoding.
    - The contained tables are not modified after decoding and may be shared
      read-only between threads.
    """
    segments: Tuple[TdmsSegment, ...]
    object_paths: "ObjectPathInterner"
    raw_data_indexes: "RawDataIndexTable"
    properties: PropertyStore
    warnings: Tuple[str, ...] = ()
    _groups: Optional[Dict[str, Tuple[str, ...]]] = field(default=None, init=False, repr=False, compare=False)
    _sample_counts: Dict[ObjectPathId, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def paths(self) -> Tuple[str, ...]:
        return self.object_paths.paths()

    def object_id(self, path: PathOrId) -> ObjectPathId:
        if isinstance(path, str):
            return self.object_paths.id_of(path)
        if path < 0 or path >= len(self.object_paths):
            raise KeyError(f"Unknown object id: {path}")
        return path

    def _group_map(self) -> Dict[str, Tuple[str, ...]]:
        # Parsed once; the interner no longer grows after decoding.
        if self._groups is None:
            out: Dict[str, List[str]] = {}
            for path in self.object_paths:
                parts = split_object_path(path)
                if len(parts) == 1:
                    out.setdefault(parts[0], [])
                elif len(parts) == 2:
                    out.setdefault(parts[0], []).append(parts[1])
            object.__setattr__(self, "_groups", {g: tuple(c) for g, c in out.items()})
        return self._groups

    def groups(self) -> Dict[str, List[str]]:
        """Group name -> channel names, both in first-seen order."""
        return {g: list(c) for g, c in self._group_map().items()}

    def has_group(self, group: str) -> bool:
        return group in self._group_map()

    def channels_of(self, group: str) -> Tuple[str, ...]:
        """Channel names of group; KeyError when the group is unknown."""
        try:
            return self._group_map()[group]
        except KeyError:
            raise KeyError(f"Unknown group: {group!r}") from None

    def properties_of(self, path: PathOrId) -> Tuple[Property, ...]:
        return self.properties.get_all(self.object_id(path))

    def property(self, path: PathOrId, name: str, default: Any = None) -> Any:
        return self.properties.get(self.object_id(path), name, default)

    def segments_with_data(self, path: PathOrId) -> Iterator[Tuple[TdmsSegment, RawDataIndex]]:
        object_id = self.object_id(path)
        for segment in self.segments:
            obj = segment.find(object_id)
            if obj is not None and obj.raw_data_index is not None:
                yield segment, self.raw_data_indexes[obj.raw_data_index]

    def data_type(self, path: PathOrId) -> Optional[TypeTag]:
        """Type of the last shape declared for this object, None if it never carried data."""
        data_type = None
        for _, raw_index in self.segments_with_data(path):
            data_type = raw_index.data_type
        return data_type

    def sample_count(self, path: PathOrId) -> int:
        """Total number of samples across all segments, from the index alone."""
        object_id = self.object_id(path)
        total = self._sample_counts.get(object_id)
        if total is None:
            total = 0
            for segment, raw_index in self.segments_with_data(object_id):
                layout = compute_chunk_layout(segment, self.raw_data_indexes)
                total += layout.chunk_count * raw_index.number_of_values
            self._sample_counts[object_id] = total
        return total
