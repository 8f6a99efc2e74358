"""Print the decoded index of a file: segments, channels and properties.

Non-interactive inspection tool; it decodes metadata only unless --samples
is given.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from tdms_decoder.analysis.frames import channel_summary, properties_dataframe
from tdms_decoder.errors import TdmsError
from tdms_decoder.ingest.segment_decoder import DecoderConfig
from tdms_decoder.tdms_file import TdmsFile


def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse

    p = argparse.ArgumentParser(
        prog="python -m tdms_decoder.validation.dump_index",
        description="Decode a TDMS file and print its segment and channel index.",
    )
    p.add_argument("file", help="Path to the .tdms file")
    p.add_argument("--properties", action="store_true", help="Also print every property")
    p.add_argument("--samples", type=int, default=0, help="Print the first N samples of each channel")
    p.add_argument("--max-segments", type=int, default=None, help="Stop after this many segments")
    p.add_argument("--strict", action="store_true", help="Reject segments that were never finalised")
    p.add_argument("-v", "--verbose", action="store_true", help="Log each decoded segment")

    ns = p.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=logging.DEBUG if ns.verbose else logging.WARNING)

    cfg = DecoderConfig(
        allow_incomplete_final_segment=not ns.strict,
        max_segments=ns.max_segments,
    )
    try:
        f = TdmsFile.read(ns.file, cfg)
    except TdmsError as e:
        print(f"ERROR: {type(e).__name__}: {e}")
        return 1

    with f:
        index = f.index
        print(f"{f.path}: {len(index.segments)} segments, {len(index.object_paths)} objects")
        for i, seg in enumerate(index.segments):
            print(
                f"  segment {i}: at {seg.position}, data {seg.data_position}..{seg.next_segment_position}, "
                f"{len(seg.objects)} objects, toc=0x{int(seg.toc):x}"
            )
        for w in index.warnings:
            print(f"WARNING: {w}")

        summary = channel_summary(index)
        if len(summary):
            print(summary.to_string(index=False))

        if ns.properties:
            props = properties_dataframe(index)
            if len(props):
                print(props.to_string(index=False))

        if ns.samples > 0:
            try:
                for group in f.groups():
                    for channel in group.channels():
                        data = channel.read_data()
                        print(f"{channel.path}: {data[:ns.samples]!r}")
            except TdmsError as e:
                print(f"ERROR: {type(e).__name__}: {e}")
                return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
