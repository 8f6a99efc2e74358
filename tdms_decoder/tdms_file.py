"""High-level access: open a source, list groups/channels, read samples.

Example
-------
>>> from tdms_decoder import TdmsFile                    # doctest: +SKIP
>>> f = TdmsFile.read("run01.tdms")                       # doctest: +SKIP
>>> for group in f.groups():                              # doctest: +SKIP
...     for channel in group.channels():
...         print(channel.path, len(channel), channel.read_data()[:5])
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Union

import numpy as np
import pandas as pd

from tdms_decoder.analysis.extraction import SampleExtractor
from tdms_decoder.analysis.frames import channel_summary, group_dataframe
from tdms_decoder.ingest.object_paths import build_object_path
from tdms_decoder.ingest.segment_decoder import DecoderConfig, read_metadata
from tdms_decoder.models.index import TdmsIndex
from tdms_decoder.models.types import TypeTag


class TdmsFile:
    """
    Decoded file plus the means to read its samples.

    When built from a path, every read opens its own handle, so channels may
    be read from several threads at once. When built from a stream, that
    stream is reused (and is not closed by this object).
    """

    def __init__(self, index: TdmsIndex, *, path: Optional[Path] = None, source: Optional[BinaryIO] = None):
        if (path is None) == (source is None):
            raise ValueError("exactly one of path or source is required")
        self.index = index
        self.path = path
        self._source = source
        self._closed = False

    @classmethod
    def read(cls, file: Union[str, Path, BinaryIO], config: Optional[DecoderConfig] = None) -> "TdmsFile":
        if isinstance(file, (str, Path)):
            path = Path(file).expanduser().resolve()
            if not path.exists():
                raise FileNotFoundError(str(path))
            with open(path, "rb") as f:
                index = read_metadata(f, config)
            return cls(index, path=path)
        return cls(read_metadata(file, config), source=file)

    @contextmanager
    def extractor(self) -> Iterator[SampleExtractor]:
        if self._closed:
            raise ValueError("I/O operation on closed TdmsFile")
        if self._source is not None:
            yield SampleExtractor(self.index, self._source)
            return
        with open(self.path, "rb") as f:
            yield SampleExtractor(self.index, f)

    @property
    def warnings(self):
        return self.index.warnings

    @property
    def properties(self) -> Dict[str, Any]:
        if "/" not in self.index.object_paths:
            return {}
        return self.index.properties.as_dict(self.index.object_id("/"))

    def groups(self) -> List["TdmsGroup"]:
        return [TdmsGroup(self, name) for name in self.index.groups()]

    def __getitem__(self, group: str) -> "TdmsGroup":
        if not self.index.has_group(group):
            raise KeyError(f"Unknown group: {group!r}")
        return TdmsGroup(self, group)

    def summary(self) -> pd.DataFrame:
        return channel_summary(self.index)

    def as_dataframe(self) -> pd.DataFrame:
        """All channels, one column per channel path."""
        frames = []
        for group in self.groups():
            if not group.channels():
                continue
            df = group.as_dataframe()
            df.columns = [build_object_path(group.name, c) for c in df.columns]
            frames.append(df)
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, axis=1)

    def close(self) -> None:
        """Drop the stream reference. A caller-owned stream is left open."""
        self._source = None
        self._closed = True

    def __enter__(self) -> "TdmsFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        where = str(self.path) if self.path is not None else "<stream>"
        return f"TdmsFile({where}, segments={len(self.index.segments)})"


class TdmsGroup:
    def __init__(self, file: TdmsFile, name: str) -> None:
        self.file = file
        self.name = name
        self.path = build_object_path(name)

    @property
    def properties(self) -> Dict[str, Any]:
        index = self.file.index
        if self.path not in index.object_paths:
            return {}
        return index.properties.as_dict(index.object_id(self.path))

    def channels(self) -> List["TdmsChannel"]:
        return [TdmsChannel(self.file, self.name, c) for c in self.file.index.channels_of(self.name)]

    def __getitem__(self, channel: str) -> "TdmsChannel":
        if channel not in self.file.index.channels_of(self.name):
            raise KeyError(f"Unknown channel {channel!r} in group {self.name!r}")
        return TdmsChannel(self.file, self.name, channel)

    def as_dataframe(self) -> pd.DataFrame:
        with self.file.extractor() as ex:
            return group_dataframe(ex, self.name)

    def __repr__(self) -> str:
        return f"TdmsGroup({self.path})"


class TdmsChannel:
    def __init__(self, file: TdmsFile, group: str, name: str) -> None:
        self.file = file
        self.group = group
        self.name = name
        self.path = build_object_path(group, name)

    @property
    def properties(self) -> Dict[str, Any]:
        return self.file.index.properties.as_dict(self.file.index.object_id(self.path))

    @property
    def data_type(self) -> Optional[TypeTag]:
        return self.file.index.data_type(self.path)

    def __len__(self) -> int:
        return self.file.index.sample_count(self.path)

    def read_data(self) -> np.ndarray:
        with self.file.extractor() as ex:
            return ex.read_samples(self.path)

    def __repr__(self) -> str:
        return f"TdmsChannel({self.path})"
