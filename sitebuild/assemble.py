#!/usr/bin/env python3
"""Assemble the static download page into ``dist/``.

The run wipes the output directory, copies the background image and the three
``united.*`` data files verbatim, and renders ``webpage/index.html`` by
replacing every literal ``{{time}}`` marker with the build timestamp.  Any
filesystem error aborts the run and propagates to the caller.
"""

from __future__ import annotations

import argparse
import dataclasses
import datetime as _dt
import os
import pathlib
import shutil
from typing import Iterable, List, Sequence, Tuple

from .health import HealthReport

ROOT = pathlib.Path(os.getenv("SITE_ROOT") or ".")
DIST_DIR = os.getenv("DIST_DIR", "dist").strip() or "dist"

MARKER = "{{time}}"

TEMPLATE: Tuple[str, str] = ("webpage/index.html", "index.html")
ASSETS: Sequence[Tuple[str, str]] = (
    ("webpage/background.webp", "background.webp"),
    ("united.fln", "united.fln"),
    ("united.json", "united.json"),
    ("united-lx.fln", "united-lx.fln"),
)

__all__ = [
    "ASSETS",
    "BuildResult",
    "MARKER",
    "TEMPLATE",
    "build",
    "copy_asset",
    "expected_outputs",
    "main",
    "read_document",
    "render_template",
    "render_timestamp",
    "reset_output",
    "write_document",
]


@dataclasses.dataclass(slots=True)
class BuildResult:
    """Outcome of a successful build."""

    dist: pathlib.Path
    timestamp: str
    written: List[pathlib.Path] = dataclasses.field(default_factory=list)


def expected_outputs() -> List[str]:
    """Return the file names a complete build leaves in the output directory."""
    return sorted([TEMPLATE[1]] + [dest for _src, dest in ASSETS])


def reset_output(dist: pathlib.Path) -> None:
    """Remove ``dist`` with all of its contents (if present) and recreate it empty."""
    if dist.is_dir() and not dist.is_symlink():
        shutil.rmtree(dist)
    elif dist.exists() or dist.is_symlink():
        dist.unlink()
    dist.mkdir(parents=True)


def copy_asset(source: pathlib.Path, destination: pathlib.Path) -> pathlib.Path:
    # copyfile keeps the bytes and nothing else; permissions come from the umask.
    shutil.copyfile(source, destination)
    return destination


def render_timestamp(now: _dt.datetime | None = None) -> str:
    """Return ``now`` (default: current time) as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""

    current = now or _dt.datetime.now(_dt.timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=_dt.timezone.utc)
    else:
        current = current.astimezone(_dt.timezone.utc)
    return current.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def render_template(text: str, timestamp: str) -> str:
    """Replace every literal ``{{time}}`` in ``text`` with ``timestamp``."""
    return text.replace(MARKER, timestamp)


def read_document(path: pathlib.Path) -> str:
    """Read ``path`` as UTF-8 without translating line endings."""
    with path.open("r", encoding="utf-8", newline="") as handle:
        return handle.read()


def write_document(path: pathlib.Path, text: str) -> pathlib.Path:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(text)
    return path


def build(
    root: pathlib.Path = ROOT,
    dist: pathlib.Path | None = None,
    *,
    now: _dt.datetime | None = None,
) -> BuildResult:
    """Reset the output directory, copy the assets and render the page."""

    root = pathlib.Path(root)
    dist = pathlib.Path(dist) if dist is not None else root / DIST_DIR

    # Nothing may be written before the reset has finished.
    reset_output(dist)
    result = BuildResult(dist=dist, timestamp=render_timestamp(now))

    template_src, template_dest = TEMPLATE
    html = read_document(root / template_src)
    result.written.append(write_document(dist / template_dest, render_template(html, result.timestamp)))
    print(f"  Rendered: {template_dest}")

    for source, destination in ASSETS:
        result.written.append(copy_asset(root / source, dist / destination))
        print(f"  Copied: {destination}")

    return result


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Assemble the united download page")
    parser.add_argument(
        "--root",
        default=ROOT,
        type=pathlib.Path,
        help="Project root holding webpage/ and the united.* files (default: current directory)",
    )
    parser.add_argument(
        "--dist",
        type=pathlib.Path,
        help=f"Output directory, wiped on every run (default: <root>/{DIST_DIR})",
    )
    parser.add_argument(
        "--no-health",
        action="store_true",
        help="Do not write the _health/build.json heartbeat",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    report = None if args.no_health else HealthReport("build", root=args.root)

    try:
        result = build(args.root, args.dist)
    except Exception as exc:
        if report is not None:
            report.record_error(f"{type(exc).__name__}: {exc}")
            report.write(files_written=0)
        raise

    if report is not None:
        report.write(files_written=len(result.written), last_build=result.timestamp)

    print(f"\n✓ Built {len(result.written)} file(s) into {result.dist} at {result.timestamp}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
