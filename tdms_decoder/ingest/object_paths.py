"""Object path interning and parsing.

Object paths identify the root (``/``), a group (``/'Group'``) or a channel
(``/'Group'/'Channel'``). Names are wrapped in single quotes and a literal
quote inside a name is doubled (``''``).

During decoding every path is replaced by a dense integer id so that
property and raw-data-index lookups never hash or compare path strings.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Tuple

from tdms_decoder.models.segments import ObjectPathId


class ObjectPathInterner:
    """Maps path strings to ids assigned sequentially in first-seen order. Ids are never reused."""

    def __init__(self) -> None:
        self._ids: Dict[str, ObjectPathId] = {}
        self._paths: List[str] = []

    def get_or_create_id(self, path: str) -> ObjectPathId:
        object_id = self._ids.get(path)
        if object_id is None:
            object_id = len(self._paths)
            self._ids[path] = object_id
            self._paths.append(path)
        return object_id

    def id_of(self, path: str) -> ObjectPathId:
        try:
            return self._ids[path]
        except KeyError:
            raise KeyError(f"Unknown object path: {path!r}") from None

    def path_of(self, object_id: ObjectPathId) -> str:
        return self._paths[object_id]

    def paths(self) -> Tuple[str, ...]:
        return tuple(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._ids

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)


def split_object_path(path: str) -> Tuple[str, ...]:
    """
    Split an object path into its unquoted components.

    >>> split_object_path("/'Group'/'Chan''1'")
    ('Group', "Chan'1")
    >>> split_object_path("/")
    ()
    """
    if path == "/":
        return ()
    if not path.startswith("/"):
        raise ValueError(f"Object path must start with '/': {path!r}")

    components: List[str] = []
    i = 0
    n = len(path)
    while i < n:
        if path[i] != "/" or i + 1 >= n or path[i + 1] != "'":
            raise ValueError(f"Malformed object path at index {i}: {path!r}")
        i += 2
        name: List[str] = []
        while True:
            if i >= n:
                raise ValueError(f"Unterminated name in object path: {path!r}")
            if path[i] == "'":
                if i + 1 < n and path[i + 1] == "'":
                    name.append("'")
                    i += 2
                    continue
                i += 1
                break
            name.append(path[i])
            i += 1
        components.append("".join(name))
    return tuple(components)


def build_object_path(*components: str) -> str:
    if not components:
        return "/"
    return "".join("/'" + c.replace("'", "''") + "'" for c in components)
