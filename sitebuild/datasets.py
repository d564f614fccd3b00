#!/usr/bin/env python3
"""Produce ``united.fln``, ``united-lx.fln`` and ``united.json``.

The FLARMNET file, the OGN device database and the WeGlide user list are
downloaded (or read from ``.cache/`` while younger than an hour), merged, and
written in the XCSoar, LX and JSON formats next to the page sources.
"""

from __future__ import annotations

import argparse
import dataclasses
import pathlib
from typing import Dict, Iterable, List

from . import flarmnet, sources
from .assemble import ROOT
from .cache import CACHE_DIR, DEFAULT_MAX_AGE
from .health import HealthReport
from .merge import merge_records
from .sanitize import sanitize_record_for_lx, sanitize_record_for_xcsoar

UNITED_VERSION = 1

OUTPUTS = ("united.fln", "united-lx.fln", "united.json")


@dataclasses.dataclass(slots=True)
class DatasetStats:
    ogn_devices: int = 0
    flarmnet_records: int = 0
    weglide_users: int = 0
    merged_records: int = 0
    written: List[pathlib.Path] = dataclasses.field(default_factory=list)


def render_outputs(merged: flarmnet.FlarmnetFile) -> Dict[str, str]:
    """Return the content of every output file keyed by file name."""
    xcsoar = flarmnet.FlarmnetFile(merged.version, [sanitize_record_for_xcsoar(r) for r in merged.records])
    lx = flarmnet.FlarmnetFile(merged.version, [sanitize_record_for_lx(r) for r in merged.records])
    return {
        "united.fln": flarmnet.encode_xcsoar(xcsoar),
        "united-lx.fln": flarmnet.encode_lx(lx),
        "united.json": flarmnet.encode_json(merged),
    }


def write_outputs(output_dir: pathlib.Path, contents: Dict[str, str]) -> List[pathlib.Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name in OUTPUTS:
        path = output_dir / name
        print(f"Writing {name}…")
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(contents[name])
        written.append(path)
    return written


def build_datasets(
    output_dir: pathlib.Path = ROOT,
    *,
    cache_dir: pathlib.Path | None = None,
    max_age: float = DEFAULT_MAX_AGE,
) -> DatasetStats:
    stats = DatasetStats()

    flarmnet_file = sources.get_flarmnet_file(cache_dir=cache_dir, max_age=max_age)
    ogn_devices = sources.get_ogn_devices(cache_dir=cache_dir, max_age=max_age)
    weglide_users = sources.get_weglide_users(cache_dir=cache_dir, max_age=max_age)
    stats.flarmnet_records = len(flarmnet_file.records)
    stats.ogn_devices = len(ogn_devices)
    stats.weglide_users = len(weglide_users)

    print("Merging datasets…")
    records = merge_records(ogn_devices, flarmnet_file.records, weglide_users)
    stats.merged_records = len(records)

    merged = flarmnet.FlarmnetFile(version=UNITED_VERSION, records=records)
    stats.written = write_outputs(pathlib.Path(output_dir), render_outputs(merged))
    return stats


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge FLARMNET, OGN DDB and WeGlide into the united files")
    parser.add_argument(
        "--root",
        default=ROOT,
        type=pathlib.Path,
        help="Directory the united.* files are written to (default: current directory)",
    )
    parser.add_argument(
        "--cache-dir",
        default=CACHE_DIR,
        type=pathlib.Path,
        help="Directory holding downloaded sources (default: .cache)",
    )
    parser.add_argument(
        "--max-age",
        default=DEFAULT_MAX_AGE,
        type=float,
        help="Seconds before a cached download is refreshed (default: 3600)",
    )
    parser.add_argument(
        "--no-health",
        action="store_true",
        help="Do not write the _health/datasets.json heartbeat",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    report = None if args.no_health else HealthReport("datasets", root=args.root)

    try:
        stats = build_datasets(args.root, cache_dir=args.cache_dir, max_age=args.max_age)
    except Exception as exc:
        if report is not None:
            report.record_error(f"{type(exc).__name__}: {exc}")
            report.write(files_written=0)
        raise

    if report is not None:
        report.write(files_written=len(stats.written))

    print(
        "Merged", stats.ogn_devices, "OGN devices,",
        stats.flarmnet_records, "FlarmNet records and",
        stats.weglide_users, "WeGlide users into",
        stats.merged_records, "records",
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
