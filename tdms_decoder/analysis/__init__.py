"""Analysis package - sample extraction and tabular views.

Design principle:
  - Ingest produces a :class:`~tdms_decoder.models.index.TdmsIndex`.
  - Analysis consumes that index plus a byte source and never re-parses metadata.
"""

from .extraction import SampleExtractor, decode_raw_block, result_dtype
from .frames import channel_summary, group_dataframe, properties_dataframe

__all__ = [
    "SampleExtractor",
    "decode_raw_block",
    "result_dtype",
    "channel_summary",
    "group_dataframe",
    "properties_dataframe",
]
