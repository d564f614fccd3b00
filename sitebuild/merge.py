"""Merge the OGN DDB, FLARMNET and WeGlide datasets into one record list.

OGN DDB entries form the base.  A FLARMNET or WeGlide entry for the same
FLARM ID only enriches an existing record when both agree on the call sign;
entries for IDs that are not known yet are added as they are.  IDs are
compared case-insensitively, and a later entry for the same ID replaces an
earlier one within a dataset.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from .flarmnet import Record
from .sanitize import sanitize
from .sources import OgnDevice, WeglideUser

__all__ = ["merge_records"]


def _from_ogn(device: OgnDevice) -> Record:
    return Record(
        flarm_id=device.device_id,
        plane_type=device.aircraft_model,
        registration=device.registration,
        call_sign=device.cn,
    )


def _merge_flarmnet(merged: Dict[str, Record], records: Iterable[Record]) -> None:
    latest = {record.flarm_id.lower(): record for record in records}
    for key, record in latest.items():
        existing = merged.get(key)
        if existing is None:
            merged[key] = record
            continue
        if existing.call_sign != record.call_sign:
            continue

        existing.pilot_name = record.pilot_name
        existing.airfield = record.airfield
        existing.frequency = record.frequency
        if not existing.registration:
            existing.registration = record.registration
        if not existing.plane_type:
            existing.plane_type = record.plane_type


def _merge_weglide(merged: Dict[str, Record], users: Iterable[WeglideUser]) -> None:
    latest = {user.device.id.lower(): user for user in users if user.device is not None}
    for key, user in latest.items():
        device = user.device
        existing = merged.get(key)
        if existing is None:
            merged[key] = user.to_record()
            continue
        if existing.call_sign != (device.competition_id or ""):
            continue

        existing.pilot_name = sanitize(user.name)
        if not existing.registration:
            existing.registration = sanitize(device.name or "")
        if not existing.airfield or existing.airfield == existing.registration:
            existing.airfield = sanitize(user.home_airport or "")
        if not existing.plane_type:
            existing.plane_type = sanitize(device.aircraft or "")


def merge_records(
    ogn_devices: Iterable[OgnDevice],
    flarmnet_records: Iterable[Record],
    weglide_users: Iterable[WeglideUser],
) -> List[Record]:
    """Return the merged records sorted by FLARM ID.

    An airfield that merely repeats the registration is cleared.
    """
    merged: Dict[str, Record] = {device.device_id.lower(): _from_ogn(device) for device in ogn_devices}
    _merge_flarmnet(merged, flarmnet_records)
    _merge_weglide(merged, weglide_users)

    records = sorted(merged.values(), key=lambda record: record.flarm_id)
    for record in records:
        if record.airfield == record.registration:
            record.airfield = ""
    return records
