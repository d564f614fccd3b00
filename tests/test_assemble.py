import datetime
import pathlib

import pytest

from sitebuild import assemble

TEMPLATE_HTML = """<!doctype html>
<html>
<head><title>united FLARMNET</title></head>
<body>
  <p>Last update: <time datetime="{{time}}">{{time}}</time></p>
  <p>Literal braces {{ time }} and {{times}} stay as they are.</p>
</body>
</html>
"""


def _write_sources(root: pathlib.Path, template: str = TEMPLATE_HTML) -> None:
    (root / "webpage").mkdir(parents=True, exist_ok=True)
    (root / "webpage" / "index.html").write_text(template, encoding="utf-8")
    (root / "webpage" / "background.webp").write_bytes(b"RIFF\x00\x00\x00\x00WEBPVP8 \xff\x00\x10")
    (root / "united.fln").write_bytes(b"0001\n4444414E4E4E4F\r\n")
    (root / "united.json").write_text('{"records": []}\n', encoding="utf-8")
    (root / "united-lx.fln").write_bytes(bytes(range(256)))


def test_render_template_replaces_every_marker_literally():
    rendered = assemble.render_template("a{{time}}b{{time}}{{ time }}", "T")
    assert rendered == "aTbT{{ time }}"


def test_render_template_without_marker_is_unchanged():
    assert assemble.render_template("<p>plain</p>", "T") == "<p>plain</p>"


def test_render_timestamp_uses_utc_milliseconds():
    now = datetime.datetime(2024, 5, 8, 14, 34, 56, 789123, tzinfo=datetime.timezone(datetime.timedelta(hours=2)))
    assert assemble.render_timestamp(now) == "2024-05-08T12:34:56.789Z"


def test_render_timestamp_treats_naive_values_as_utc():
    assert assemble.render_timestamp(datetime.datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"


def test_build_writes_exactly_the_expected_outputs(tmp_path):
    _write_sources(tmp_path)

    result = assemble.build(tmp_path)

    dist = tmp_path / "dist"
    assert result.dist == dist
    assert sorted(path.name for path in dist.iterdir()) == assemble.expected_outputs()
    assert len(result.written) == 5


def test_build_copies_assets_byte_for_byte(tmp_path):
    _write_sources(tmp_path)

    assemble.build(tmp_path)

    for source, destination in assemble.ASSETS:
        assert (tmp_path / "dist" / destination).read_bytes() == (tmp_path / source).read_bytes()


def test_build_only_changes_the_markers(tmp_path):
    _write_sources(tmp_path)
    now = datetime.datetime(2024, 5, 8, 12, 0, tzinfo=datetime.timezone.utc)

    result = assemble.build(tmp_path, now=now)

    rendered = (tmp_path / "dist" / "index.html").read_text(encoding="utf-8")
    assert result.timestamp == "2024-05-08T12:00:00.000Z"
    assert assemble.MARKER not in rendered
    assert rendered.count(result.timestamp) == 2
    assert rendered.replace(result.timestamp, "<mask>") == TEMPLATE_HTML.replace(assemble.MARKER, "<mask>")


def test_build_timestamp_is_close_to_wall_clock(tmp_path):
    _write_sources(tmp_path)

    before = datetime.datetime.now(datetime.timezone.utc)
    result = assemble.build(tmp_path)
    after = datetime.datetime.now(datetime.timezone.utc)

    stamped = datetime.datetime.fromisoformat(result.timestamp[:-1] + "+00:00")
    assert before - datetime.timedelta(seconds=1) <= stamped <= after + datetime.timedelta(seconds=1)


def test_build_clears_previous_output(tmp_path):
    _write_sources(tmp_path)
    stale = tmp_path / "dist" / "old" / "leftover.txt"
    stale.parent.mkdir(parents=True)
    stale.write_text("stale", encoding="utf-8")
    (tmp_path / "dist" / "united.fln").write_text("previous run", encoding="utf-8")

    assemble.build(tmp_path)

    assert not stale.exists()
    assert sorted(path.name for path in (tmp_path / "dist").iterdir()) == assemble.expected_outputs()
    assert (tmp_path / "dist" / "united.fln").read_bytes() == (tmp_path / "united.fln").read_bytes()


def test_build_twice_differs_only_in_timestamp(tmp_path):
    _write_sources(tmp_path)

    first = assemble.build(tmp_path, now=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc))
    first_files = {p.name: p.read_bytes() for p in (tmp_path / "dist").iterdir()}
    second = assemble.build(tmp_path, now=datetime.datetime(2024, 1, 2, tzinfo=datetime.timezone.utc))
    second_files = {p.name: p.read_bytes() for p in (tmp_path / "dist").iterdir()}

    assert first_files.keys() == second_files.keys()
    for name in first_files:
        left = first_files[name].replace(first.timestamp.encode(), b"<mask>")
        right = second_files[name].replace(second.timestamp.encode(), b"<mask>")
        assert left == right


def test_build_supports_custom_dist(tmp_path):
    _write_sources(tmp_path)
    out = tmp_path / "public" / "site"

    result = assemble.build(tmp_path, out)

    assert result.dist == out
    assert not (tmp_path / "dist").exists()
    assert sorted(path.name for path in out.iterdir()) == assemble.expected_outputs()


def test_reset_output_replaces_a_plain_file(tmp_path):
    dist = tmp_path / "dist"
    dist.write_text("not a directory", encoding="utf-8")

    assemble.reset_output(dist)

    assert dist.is_dir()
    assert list(dist.iterdir()) == []


def test_missing_asset_propagates_error(tmp_path):
    _write_sources(tmp_path)
    (tmp_path / "united-lx.fln").unlink()

    with pytest.raises(FileNotFoundError):
        assemble.build(tmp_path)


def test_missing_template_propagates_error(tmp_path):
    _write_sources(tmp_path)
    (tmp_path / "webpage" / "index.html").unlink()

    with pytest.raises(FileNotFoundError):
        assemble.build(tmp_path)

    assert list((tmp_path / "dist").iterdir()) == []


def test_main_builds_and_writes_heartbeat(tmp_path, capsys):
    _write_sources(tmp_path)

    assert assemble.main(["--root", str(tmp_path)]) == 0

    assert sorted(path.name for path in (tmp_path / "dist").iterdir()) == assemble.expected_outputs()
    assert (tmp_path / "_health" / "build.json").exists()
    assert "Built 5 file(s)" in capsys.readouterr().out


def test_main_no_health_skips_heartbeat(tmp_path):
    _write_sources(tmp_path)

    assert assemble.main(["--root", str(tmp_path), "--no-health"]) == 0

    assert not (tmp_path / "_health").exists()


def test_main_reraises_and_records_failure(tmp_path):
    _write_sources(tmp_path)
    (tmp_path / "united.json").unlink()

    with pytest.raises(FileNotFoundError):
        assemble.main(["--root", str(tmp_path)])

    heartbeat = (tmp_path / "_health" / "build.json").read_text(encoding="utf-8")
    assert "FileNotFoundError" in heartbeat
    assert '"files_written": 0' in heartbeat


def test_build_keeps_template_line_endings(tmp_path):
    _write_sources(tmp_path)
    template = b"<p>\r\n{{time}}\r\n</p>\rend\n{{time}}\r\n"
    (tmp_path / "webpage" / "index.html").write_bytes(template)

    result = assemble.build(tmp_path)

    rendered = (tmp_path / "dist" / "index.html").read_bytes()
    masked = rendered.replace(result.timestamp.encode(), b"<mask>")
    assert masked == template.replace(assemble.MARKER.encode(), b"<mask>")


def test_main_records_decode_failure_in_heartbeat(tmp_path):
    _write_sources(tmp_path)
    (tmp_path / "webpage" / "index.html").write_bytes(b"<p>\xff{{time}}</p>")

    with pytest.raises(UnicodeDecodeError):
        assemble.main(["--root", str(tmp_path)])

    heartbeat = (tmp_path / "_health" / "build.json").read_text(encoding="utf-8")
    assert "UnicodeDecodeError" in heartbeat


def test_repository_ships_page_sources():
    webpage = pathlib.Path(__file__).resolve().parents[1] / "webpage"

    image = (webpage / "background.webp").read_bytes()
    assert image[:4] == b"RIFF" and image[8:12] == b"WEBP"
    assert assemble.MARKER in (webpage / "index.html").read_text(encoding="utf-8")
