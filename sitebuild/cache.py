"""On-disk cache for downloaded source datasets."""

from __future__ import annotations

import os
import pathlib
import time

CACHE_DIR = pathlib.Path(os.getenv("CACHE_DIR") or ".cache")
DEFAULT_MAX_AGE = 60 * 60

__all__ = ["CACHE_DIR", "Cache", "DEFAULT_MAX_AGE"]


class Cache:
    """A single cached file refreshed once it is older than ``max_age`` seconds."""

    def __init__(
        self,
        name: str,
        max_age: float = DEFAULT_MAX_AGE,
        *,
        cache_dir: pathlib.Path | None = None,
    ) -> None:
        self.cache_dir = pathlib.Path(cache_dir) if cache_dir is not None else CACHE_DIR
        self.path = self.cache_dir / name
        self.max_age = max_age

    def __repr__(self) -> str:
        return f"Cache({str(self.path)!r}, max_age={self.max_age})"

    def needs_update(self, *, now: float | None = None) -> bool:
        """Return ``True`` when the file is missing or older than ``max_age``.

        A modification time in the future counts as fresh.
        """
        try:
            modified = self.path.stat().st_mtime
        except OSError:
            return True

        elapsed = (time.time() if now is None else now) - modified
        if elapsed < 0:
            return False
        return elapsed > self.max_age

    def _ensure_dir(self) -> None:
        if not self.cache_dir.exists():
            print(f"Creating cache folder {self.cache_dir}")
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def read(self) -> str:
        self._ensure_dir()
        return self.path.read_text(encoding="utf-8")

    def save(self, content: str) -> pathlib.Path:
        self._ensure_dir()
        self.path.write_text(content, encoding="utf-8")
        return self.path
