"""FLARMNET records and the file formats they are exchanged in.

XCSoar ``.fln`` files start with a hexadecimal version line followed by one
line per record.  Each record line is the hex encoding of 86 Latin-1 bytes made
of fixed-width, space padded fields (see ``FIELDS``).  LX devices read the same
data as XML, and ``united.json`` carries it as plain JSON.
"""

from __future__ import annotations

import dataclasses
import json
from typing import List, Sequence, Tuple
from xml.etree import ElementTree as ET

# (attribute, width in bytes)
FIELDS: Sequence[Tuple[str, int]] = (
    ("flarm_id", 6),
    ("pilot_name", 21),
    ("airfield", 21),
    ("plane_type", 21),
    ("registration", 7),
    ("call_sign", 3),
    ("frequency", 7),
)
RECORD_BYTES = sum(width for _name, width in FIELDS)

# LX element names for every field except the ID, which is an attribute.
LX_ELEMENTS: Sequence[Tuple[str, str]] = (
    ("pilot_name", "NAME"),
    ("airfield", "AIRFIELD"),
    ("plane_type", "TYPE"),
    ("registration", "REG"),
    ("call_sign", "COMPID"),
    ("frequency", "FREQUENCY"),
)

__all__ = [
    "DecodedFile",
    "FlarmnetFile",
    "Record",
    "decode_record",
    "decode_xcsoar",
    "encode_json",
    "encode_lx",
    "encode_record",
    "encode_xcsoar",
    "record_to_json",
]


@dataclasses.dataclass(slots=True)
class Record:
    flarm_id: str
    pilot_name: str = ""
    airfield: str = ""
    plane_type: str = ""
    registration: str = ""
    call_sign: str = ""
    frequency: str = ""


@dataclasses.dataclass(slots=True)
class FlarmnetFile:
    version: int
    records: List[Record] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(slots=True)
class DecodedFile:
    """Result of decoding an XCSoar file; undecodable lines end up in ``errors``."""

    version: int
    records: List[Record] = dataclasses.field(default_factory=list)
    errors: List[str] = dataclasses.field(default_factory=list)

    def to_file(self) -> FlarmnetFile:
        return FlarmnetFile(version=self.version, records=list(self.records))


def decode_record(line: str) -> Record:
    """Decode one hex encoded record line, raising ``ValueError`` when malformed."""
    text = line.strip()
    if len(text) != RECORD_BYTES * 2:
        raise ValueError(f"expected {RECORD_BYTES * 2} characters, got {len(text)}")
    raw = bytes.fromhex(text)

    values = {}
    offset = 0
    for name, width in FIELDS:
        values[name] = raw[offset:offset + width].decode("latin-1").strip()
        offset += width
    return Record(**values)


def decode_xcsoar(content: str) -> DecodedFile:
    """Decode an XCSoar ``.fln`` file.

    A missing or malformed version line raises ``ValueError``; malformed record
    lines are skipped and reported in ``DecodedFile.errors``.
    """
    lines = content.splitlines()
    if not lines or not lines[0].strip():
        raise ValueError("FLARMNET file is missing its version line")
    try:
        version = int(lines[0].strip(), 16)
    except ValueError:
        raise ValueError(f"invalid FLARMNET version line: {lines[0].strip()!r}") from None

    decoded = DecodedFile(version=version)
    for number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        try:
            decoded.records.append(decode_record(line))
        except ValueError as exc:
            decoded.errors.append(f"line {number}: {exc}")
    return decoded


def encode_record(record: Record) -> str:
    raw = b"".join(
        getattr(record, name)[:width].ljust(width).encode("latin-1", errors="replace")
        for name, width in FIELDS
    )
    return raw.hex()


def encode_xcsoar(file: FlarmnetFile) -> str:
    lines = [f"{file.version:06x}"]
    lines.extend(encode_record(record) for record in file.records)
    return "\n".join(lines) + "\n"


def encode_lx(file: FlarmnetFile) -> str:
    root = ET.Element("FLNET", {"version": str(file.version)})
    for record in file.records:
        entry = ET.SubElement(root, "FLARMDATA", {"FlarmID": record.flarm_id})
        for name, tag in LX_ELEMENTS:
            ET.SubElement(entry, tag).text = getattr(record, name)
    ET.indent(root, space="")
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"


def record_to_json(record: Record) -> dict:
    """Return ``record`` as a dict; empty fields other than ``flarm_id`` are left out."""
    payload = {"flarm_id": record.flarm_id}
    for name, _width in FIELDS[1:]:
        value = getattr(record, name)
        if value:
            payload[name] = value
    return payload


def encode_json(file: FlarmnetFile) -> str:
    payload = {
        "version": file.version,
        "records": [record_to_json(record) for record in file.records],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
