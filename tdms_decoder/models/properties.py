from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from tdms_decoder.models.segments import ObjectPathId
from tdms_decoder.models.types import TypeTag


@dataclass(frozen=True)
class Property:
    name: str
    data_type: TypeTag
    value: Any


class PropertyStore:
    """
    Per-object ordered property lists.

    Append-only: a later segment re-declaring a property adds a new entry
    instead of replacing the earlier one. Lookups by name return the most
    recently appended entry.
    """

    def __init__(self) -> None:
        self._props: Dict[ObjectPathId, List[Property]] = {}

    def append(self, object_id: ObjectPathId, prop: Property) -> None:
        self._props.setdefault(object_id, []).append(prop)

    def get_all(self, object_id: ObjectPathId) -> Tuple[Property, ...]:
        return tuple(self._props.get(object_id, ()))

    def get(self, object_id: ObjectPathId, name: str, default: Any = None) -> Any:
        for prop in reversed(self._props.get(object_id, ())):
            if prop.name == name:
                return prop.value
        return default

    def as_dict(self, object_id: ObjectPathId) -> Dict[str, Any]:
        """Last-wins view, in first-seen name order."""
        out: Dict[str, Any] = {}
        for prop in self._props.get(object_id, ()):
            out[prop.name] = prop.value
        return out

    def __contains__(self, object_id: ObjectPathId) -> bool:
        return object_id in self._props

    def __len__(self) -> int:
        return sum(len(v) for v in self._props.values())
