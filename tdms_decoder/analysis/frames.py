"""pandas views over a decoded index.

These helpers are presentation-level: they call the extraction layer and
wrap the arrays into DataFrames. Nothing here touches raw bytes.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import pandas as pd

from tdms_decoder.analysis.extraction import SampleExtractor
from tdms_decoder.ingest.object_paths import build_object_path
from tdms_decoder.models.index import TdmsIndex


def group_dataframe(
    extractor: SampleExtractor,
    group: str,
    channels: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    One column per channel of group, in declaration order.

    Channels of unequal length are aligned on the sample index; shorter
    columns are padded with NaN by pandas.
    """
    index = extractor.index
    known = index.channels_of(group)
    names = list(channels) if channels is not None else list(known)

    columns: Dict[str, pd.Series] = {}
    for name in names:
        data = extractor.read_samples(build_object_path(group, name))
        columns[name] = pd.Series(data, name=name)
    return pd.DataFrame(columns, columns=names)


def properties_dataframe(index: TdmsIndex) -> pd.DataFrame:
    """Long table of every property: path, name, type, value (append order kept)."""
    rows: List[dict] = []
    for path in index.paths():
        for prop in index.properties_of(path):
            rows.append(
                {"path": path, "name": prop.name, "data_type": prop.data_type.name, "value": prop.value}
            )
    return pd.DataFrame(rows, columns=["path", "name", "data_type", "value"])


def channel_summary(index: TdmsIndex) -> pd.DataFrame:
    """One row per channel: group, channel, data type and total sample count."""
    rows: List[dict] = []
    for group, channels in index.groups().items():
        for name in channels:
            path = build_object_path(group, name)
            data_type = index.data_type(path)
            rows.append(
                {
                    "group": group,
                    "channel": name,
                    "path": path,
                    "data_type": data_type.name if data_type is not None else None,
                    "n_samples": index.sample_count(path),
                }
            )
    return pd.DataFrame(rows, columns=["group", "channel", "path", "data_type", "n_samples"])
