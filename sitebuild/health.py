"""Helpers for writing build heartbeat files."""

from __future__ import annotations

import datetime as _dt
import json
import os
import pathlib
from typing import Sequence

HEALTH_DIR = os.getenv("HEALTH_DIR", "").strip()

__all__ = ["HealthReport", "resolve_health_dir"]


def _utc_now_iso() -> str:
    """Return a millisecond-precision UTC timestamp with a ``Z`` suffix."""

    now = _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="milliseconds") + "Z"


def _coerce_errors(messages: Sequence[str], *, limit: int = 20) -> list[str]:
    """Clean and deduplicate error strings while preserving order."""

    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in messages:
        text = str(raw or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        cleaned.append(text)
        if len(cleaned) >= limit:
            break
    return cleaned


def resolve_health_dir(root: pathlib.Path) -> pathlib.Path:
    """Return ``$HEALTH_DIR`` when set, otherwise ``<root>/_health``."""

    if HEALTH_DIR:
        return pathlib.Path(HEALTH_DIR)
    return pathlib.Path(root) / "_health"


class HealthReport:
    """Accumulate run errors and persist them to ``_health/<name>.json``."""

    def __init__(
        self,
        name: str,
        *,
        root: pathlib.Path = pathlib.Path("."),
        health_dir: pathlib.Path | None = None,
    ) -> None:
        self.name = name
        self.health_dir = health_dir or resolve_health_dir(root)
        self.errors: list[str] = []

    # Public API ---------------------------------------------------------
    def record_error(self, message: str) -> None:
        text = str(message or "").strip()
        if text:
            self.errors.append(text)

    @property
    def path(self) -> pathlib.Path:
        return self.health_dir / f"{self.name}.json"

    def write(self, *, files_written: int | None = None, last_build: str | None = None) -> pathlib.Path:
        payload = {
            "last_build": (last_build or "").strip() or _utc_now_iso(),
            "files_written": max(0, files_written or 0),
            "errors": _coerce_errors(self.errors),
        }

        self.health_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        return self.path
