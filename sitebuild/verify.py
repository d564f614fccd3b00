#!/usr/bin/env python3
"""Verify a built ``dist/`` directory against its sources."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

from .assemble import ASSETS, DIST_DIR, MARKER, ROOT, TEMPLATE, expected_outputs, read_document


@dataclass
class PageResult:
    timestamp: Optional[str]
    errors: List[str]


def parse_iso8601_utc(raw_value: str) -> datetime:
    """Parse an ISO 8601 timestamp ensuring a UTC offset."""
    if not isinstance(raw_value, str):
        raise ValueError("timestamp must be a string")
    value = raw_value.strip()
    if not value:
        raise ValueError("timestamp cannot be empty")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    offset = parsed.utcoffset()
    if offset is None:
        raise ValueError("timestamp must include a timezone offset")
    if offset != timedelta(0):
        raise ValueError("timestamp offset must be UTC")
    return parsed


def extract_timestamp(template: str, rendered: str) -> Optional[str]:
    """Return the value substituted for every marker, or ``None`` if the page diverges.

    A template without markers yields an empty string when the page is an exact
    copy of it.
    """
    parts = template.split(MARKER)
    markers = len(parts) - 1
    if markers == 0:
        return "" if rendered == template else None

    extra = len(rendered) - sum(len(part) for part in parts)
    if extra < 0 or extra % markers:
        return None
    width = extra // markers
    start = len(parts[0])
    timestamp = rendered[start:start + width]
    if timestamp.join(parts) != rendered:
        return None
    return timestamp


def check_layout(dist: Path) -> List[str]:
    errors: List[str] = []
    if not dist.is_dir():
        return [f"{dist}: output directory not found"]

    expected = set(expected_outputs())
    present = {entry.name for entry in dist.iterdir()}
    for name in sorted(expected - present):
        errors.append(f"{dist / name}: missing output")
    for name in sorted(present - expected):
        errors.append(f"{dist / name}: unexpected entry")
    return errors


def check_assets(root: Path, dist: Path) -> List[str]:
    errors: List[str] = []
    for source, destination in ASSETS:
        target = dist / destination
        if not target.exists():
            continue
        try:
            same = (root / source).read_bytes() == target.read_bytes()
        except OSError as exc:
            errors.append(f"{target}: failed to compare with {source} ({exc})")
            continue
        if not same:
            errors.append(f"{target}: content differs from {source}")
    return errors


def check_page(root: Path, dist: Path) -> PageResult:
    source, destination = TEMPLATE
    page = dist / destination
    if not page.exists():
        return PageResult(None, [])

    try:
        template = read_document(root / source)
        rendered = read_document(page)
    except (OSError, UnicodeDecodeError) as exc:
        return PageResult(None, [f"{page}: failed to read ({exc})"])

    errors: List[str] = []
    if MARKER in rendered:
        errors.append(f"{page}: still contains {MARKER!r}")

    timestamp = extract_timestamp(template, rendered)
    if timestamp is None:
        errors.append(f"{page}: differs from {source} outside the {MARKER!r} markers")
    elif timestamp:
        try:
            parse_iso8601_utc(timestamp)
        except ValueError as exc:
            errors.append(f"{page}: invalid timestamp {timestamp!r}: {exc}")
    return PageResult(timestamp, errors)


def verify(root: Path, dist: Path) -> List[str]:
    errors = check_layout(dist)
    if not dist.is_dir():
        return errors
    errors.extend(check_assets(root, dist))
    errors.extend(check_page(root, dist).errors)
    return errors


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Verify the assembled dist/ directory")
    parser.add_argument("--root", default=ROOT, type=Path, help="Project root (default: current directory)")
    parser.add_argument("--dist", type=Path, help=f"Output directory (default: <root>/{DIST_DIR})")
    args = parser.parse_args(list(argv) if argv is not None else None)

    dist = args.dist if args.dist is not None else args.root / DIST_DIR
    errors = verify(args.root, dist)

    if errors:
        for message in errors:
            print(message, file=sys.stderr)
        return 1
    print(f"{dist}: OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
