import json

import pytest

from sitebuild import flarmnet, sources
from sitebuild.flarmnet import FlarmnetFile, Record


def test_get_flarmnet_file_downloads_once_and_skips_bad_records(tmp_path, monkeypatch):
    content = flarmnet.encode_xcsoar(FlarmnetFile(version=3, records=[Record("DD1234", call_sign="XY")]))
    calls = []

    def fake_get(url):
        calls.append(url)
        return content + "broken\n"

    monkeypatch.setattr(sources, "http_get", fake_get)

    first = sources.get_flarmnet_file(cache_dir=tmp_path)
    second = sources.get_flarmnet_file(cache_dir=tmp_path)

    assert calls == [sources.FLARMNET_URL]
    assert first.version == 3
    assert first.records == [Record("DD1234", call_sign="XY")]
    assert second.records == first.records


def test_get_ogn_devices_reads_cached_copy(tmp_path, monkeypatch):
    payload = {
        "devices": [
            {
                "device_type": "F",
                "device_id": "000000",
                "aircraft_model": "HPH 304CZ-17",
                "registration": "OK-7777",
                "cn": "KN",
                "tracked": "Y",
                "identified": "Y",
                "aircraft_type": "1",
            }
        ]
    }
    (tmp_path / "ogn-ddb.json").write_text(json.dumps(payload), encoding="utf-8")
    monkeypatch.setattr(sources, "http_get", lambda url: pytest.fail("cache should be used"))

    devices = sources.get_ogn_devices(cache_dir=tmp_path)

    assert devices == [
        sources.OgnDevice(
            device_id="000000",
            aircraft_model="HPH 304CZ-17",
            registration="OK-7777",
            cn="KN",
            device_type="F",
            tracked="Y",
            identified="Y",
            aircraft_type="1",
        )
    ]


def test_get_ogn_devices_rejects_unexpected_payload(tmp_path):
    (tmp_path / "ogn-ddb.json").write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError):
        sources.get_ogn_devices(cache_dir=tmp_path)


def test_weglide_download_pages_until_empty_and_caches_users_with_device(tmp_path, monkeypatch):
    pages = [
        [
            {"id": 1, "name": "Anna", "home_airport": {"id": 5, "name": "Aalen"}, "device": {"id": "DD1234", "name": "D-1234", "competition_id": "XY", "aircraft": {"id": 9, "name": "LS4"}}},
            {"id": 2, "name": "Ben", "home_airport": None, "device": None},
        ],
        [{"id": 101, "name": "Cleo", "device": {"id": "DD9999"}}],
        [],
    ]
    urls = []

    def fake_get_json(url):
        urls.append(url)
        return pages[len(urls) - 1]

    monkeypatch.setattr(sources, "http_get_json", fake_get_json)

    users = sources.get_weglide_users(cache_dir=tmp_path)

    assert len(urls) == 3
    assert "id_in=1,2,3," in urls[0]
    assert urls[1].split("id_in=")[1].startswith("101,")
    assert [user.name for user in users] == ["Anna", "Cleo"]
    assert users[0].to_record() == Record(
        "DD1234", pilot_name="Anna", airfield="Aalen", plane_type="LS4", registration="D-1234", call_sign="XY"
    )
    assert users[1].to_record() == Record("DD9999", pilot_name="Cleo")

    cached = json.loads((tmp_path / "weglide-users.json").read_text(encoding="utf-8"))
    assert [user["id"] for user in cached] == [1, 101]


def test_download_errors_propagate(tmp_path, monkeypatch):
    def failing_get(url):
        raise OSError("connection refused")

    monkeypatch.setattr(sources, "http_get", failing_get)

    with pytest.raises(OSError):
        sources.get_flarmnet_file(cache_dir=tmp_path)
