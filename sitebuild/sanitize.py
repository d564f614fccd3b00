"""Transliterate record fields for devices with limited character sets."""

from __future__ import annotations

import dataclasses

from unidecode import unidecode

from .flarmnet import Record

# German umlauts get their conventional two-letter spelling before transliteration.
UMLAUTS = {
    "ä": "ae",
    "ö": "oe",
    "ü": "ue",
    "Ä": "Ae",
    "Ö": "Oe",
    "Ü": "Ue",
    "ß": "ss",
}

__all__ = ["sanitize", "sanitize_for_lx", "sanitize_for_xcsoar", "sanitize_record_for_lx", "sanitize_record_for_xcsoar"]


def sanitize(value: str) -> str:
    """Return an ASCII rendition of ``value``."""
    for char, replacement in UMLAUTS.items():
        value = value.replace(char, replacement)
    return unidecode(value)


def _is_latin1(value: str) -> bool:
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def sanitize_for_lx(value: str) -> str:
    return sanitize(value)


def sanitize_for_xcsoar(value: str) -> str:
    """XCSoar files are Latin-1, so only values outside that range are transliterated."""
    return value if _is_latin1(value) else sanitize(value)


def _map_fields(record: Record, func) -> Record:
    return Record(**{field.name: func(getattr(record, field.name)) for field in dataclasses.fields(record)})


def sanitize_record_for_lx(record: Record) -> Record:
    return _map_fields(record, sanitize_for_lx)


def sanitize_record_for_xcsoar(record: Record) -> Record:
    return _map_fields(record, sanitize_for_xcsoar)
