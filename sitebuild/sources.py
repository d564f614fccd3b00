"""Download and cache the FLARMNET, OGN DDB and WeGlide datasets."""

from __future__ import annotations

import dataclasses
import json
import os
import pathlib
from typing import List, Optional

from . import flarmnet
from .cache import DEFAULT_MAX_AGE, Cache
from .fetch import http_get, http_get_json

FLARMNET_URL = os.getenv("FLARMNET_URL", "https://www.flarmnet.org/static/files/wfn/data.fln")
OGN_DDB_URL = os.getenv("OGN_DDB_URL", "http://ddb.glidernet.org/download/?j=1&t=1")
WEGLIDE_USERS_URL = os.getenv("WEGLIDE_USERS_URL", "https://api.weglide.org/v1/user")
WEGLIDE_PAGE_SIZE = 100


@dataclasses.dataclass(slots=True)
class OgnDevice:
    device_id: str
    aircraft_model: str = ""
    registration: str = ""
    cn: str = ""
    device_type: str = ""
    tracked: str = ""
    identified: str = ""
    aircraft_type: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "OgnDevice":
        values = {field.name: str(data.get(field.name) or "") for field in dataclasses.fields(cls)}
        return cls(**values)


@dataclasses.dataclass(slots=True)
class WeglideDevice:
    id: str
    name: Optional[str] = None
    competition_id: Optional[str] = None
    aircraft: Optional[str] = None


@dataclasses.dataclass(slots=True)
class WeglideUser:
    id: int
    name: str
    home_airport: Optional[str] = None
    device: Optional[WeglideDevice] = None

    @classmethod
    def from_json(cls, data: dict) -> "WeglideUser":
        device = None
        raw_device = data.get("device")
        if isinstance(raw_device, dict):
            device = WeglideDevice(
                id=str(raw_device.get("id") or ""),
                name=raw_device.get("name"),
                competition_id=raw_device.get("competition_id"),
                aircraft=_nested_name(raw_device.get("aircraft")),
            )
        return cls(
            id=int(data.get("id") or 0),
            name=str(data.get("name") or ""),
            home_airport=_nested_name(data.get("home_airport")),
            device=device,
        )

    def to_record(self) -> Optional[flarmnet.Record]:
        """Return the user's device as a FLARMNET record, if they registered one."""
        if self.device is None:
            return None
        return flarmnet.Record(
            flarm_id=self.device.id,
            pilot_name=self.name,
            airfield=self.home_airport or "",
            plane_type=self.device.aircraft or "",
            registration=self.device.name or "",
            call_sign=self.device.competition_id or "",
        )


def _nested_name(value) -> Optional[str]:
    if isinstance(value, dict) and value.get("name") is not None:
        return str(value["name"])
    return None


def get_flarmnet_file(
    *, cache_dir: pathlib.Path | None = None, max_age: float = DEFAULT_MAX_AGE
) -> flarmnet.FlarmnetFile:
    """Return the official FLARMNET file, skipping records that fail to decode."""
    cache = Cache("flarmnet.fln", max_age, cache_dir=cache_dir)
    if cache.needs_update():
        print("Downloading FlarmNet file…")
        cache.save(http_get(FLARMNET_URL))

    print("Reading FlarmNet file…")
    decoded = flarmnet.decode_xcsoar(cache.read())
    if decoded.errors:
        print(f"Skipped {len(decoded.errors)} undecodable FlarmNet record(s)")
    return decoded.to_file()


def get_ogn_devices(
    *, cache_dir: pathlib.Path | None = None, max_age: float = DEFAULT_MAX_AGE
) -> List[OgnDevice]:
    cache = Cache("ogn-ddb.json", max_age, cache_dir=cache_dir)
    if cache.needs_update():
        print("Downloading OGN DDB…")
        cache.save(http_get(OGN_DDB_URL))

    print("Reading OGN DDB…")
    payload = json.loads(cache.read())
    if not isinstance(payload, dict) or not isinstance(payload.get("devices"), list):
        raise ValueError(f"{cache.path}: expected an object with a 'devices' array")
    return [OgnDevice.from_json(item) for item in payload["devices"]]


def download_weglide_page(ids: List[int]) -> List[dict]:
    url = f"{WEGLIDE_USERS_URL}?id_in={','.join(str(i) for i in ids)}&limit={WEGLIDE_PAGE_SIZE}"
    page = http_get_json(url)
    if not isinstance(page, list):
        raise ValueError(f"{url}: expected a JSON array, got {type(page).__name__}")
    return page


def download_all_weglide_users() -> List[dict]:
    """Walk user IDs in blocks of ``WEGLIDE_PAGE_SIZE`` until a block comes back empty."""
    print("Downloading WeGlide user data…")
    users: List[dict] = []
    start = 1
    while True:
        page = download_weglide_page(list(range(start, start + WEGLIDE_PAGE_SIZE)))
        if not page:
            return users
        users.extend(page)
        start += WEGLIDE_PAGE_SIZE


def get_weglide_users(
    *, cache_dir: pathlib.Path | None = None, max_age: float = DEFAULT_MAX_AGE
) -> List[WeglideUser]:
    """Return WeGlide users that registered a FLARM device."""
    cache = Cache("weglide-users.json", max_age, cache_dir=cache_dir)
    if cache.needs_update():
        all_users = download_all_weglide_users()
        with_device = [user for user in all_users if isinstance(user, dict) and user.get("device")]
        print(f"WeGlide: {len(with_device)} of {len(all_users)} users have a device")
        cache.save(json.dumps(with_device, ensure_ascii=False, indent=2) + "\n")

    print("Reading WeGlide user data…")
    payload = json.loads(cache.read())
    if not isinstance(payload, list):
        raise ValueError(f"{cache.path}: expected a JSON array")
    return [WeglideUser.from_json(item) for item in payload]
