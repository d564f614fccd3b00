"""HTTP helpers for downloading the source datasets."""

from __future__ import annotations

import json
import os
import urllib.request

HTTP_TIMEOUT = int(os.getenv("HTTP_TIMEOUT", "60"))
UA = os.getenv("UNITED_USER_AGENT", "united-flarmnet")

__all__ = ["http_get", "http_get_json"]


def http_get(url: str) -> str:
    """Return the body of ``url`` decoded as text.

    HTTP and network errors propagate; a failed download aborts the run.
    """
    req = urllib.request.Request(url, headers={"User-Agent": UA})
    with urllib.request.urlopen(req, timeout=HTTP_TIMEOUT) as r:
        raw = r.read()
        charset = r.headers.get_content_charset() or "utf-8"
    return raw.decode(charset, errors="replace")


def http_get_json(url: str):
    return json.loads(http_get(url))
