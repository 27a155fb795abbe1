"""Tests for atomic writes, done-markers and the event journal."""

from pathlib import Path

from PIL import Image
import pytest

from cropbatch.storage.atomic import (
    atomic_write_image,
    atomic_write_json,
    atomic_write_text,
    read_json,
)
from cropbatch.storage.journal import EventJournal, iter_events
from cropbatch.storage.markers import done_marker_path, is_done, write_done_marker


class _ExplodingImage:
    """Stands in for a PIL image whose encoder fails half-way."""

    def save(self, handle, format=None):
        handle.write(b"partial")
        raise OSError("disk full")


class TestAtomicWrites:
    """Tests for temp-file + rename helpers."""

    def test_image_round_trip_leaves_no_temp(self, tmp_path: Path):
        dest = tmp_path / "out" / "a.png"

        atomic_write_image(dest, Image.new("RGB", (4, 3), (1, 2, 3)))

        assert sorted(p.name for p in dest.parent.iterdir()) == ["a.png"]
        with Image.open(dest) as image:
            assert image.size == (4, 3)
            assert image.getpixel((0, 0)) == (1, 2, 3)

    def test_failed_encode_cleans_up(self, tmp_path: Path):
        dest = tmp_path / "a.png"

        with pytest.raises(OSError, match="disk full"):
            atomic_write_image(dest, _ExplodingImage())

        assert list(tmp_path.iterdir()) == []

    def test_failed_encode_keeps_previous_file(self, tmp_path: Path):
        dest = tmp_path / "a.png"
        dest.write_bytes(b"previous")

        with pytest.raises(OSError):
            atomic_write_image(dest, _ExplodingImage())

        assert dest.read_bytes() == b"previous"
        assert [p.name for p in tmp_path.iterdir()] == ["a.png"]

    def test_json(self, tmp_path: Path):
        dest = tmp_path / "report.json"

        atomic_write_json(dest, {"b": 1, "a": [1, 2]})

        assert read_json(dest) == {"a": [1, 2], "b": 1}

    def test_text(self, tmp_path: Path):
        dest = tmp_path / "nested" / "x.txt"

        atomic_write_text(dest, "hello")

        assert dest.read_text(encoding="utf-8") == "hello"


class TestDoneMarkers:
    """Tests for manifest done-markers."""

    def test_marker_is_empty_sibling(self, tmp_path: Path):
        manifest = tmp_path / "crop_metadata_1.json"
        manifest.write_text("{}", encoding="utf-8")

        assert not is_done(manifest)
        marker = write_done_marker(manifest)

        assert marker == done_marker_path(manifest) == tmp_path / "crop_metadata_1.json.done"
        assert marker.read_bytes() == b""
        assert is_done(manifest)


class TestEventJournal:
    """Tests for the JSONL journal."""

    def test_append_and_iterate(self, tmp_path: Path):
        journal = EventJournal(tmp_path / "logs" / "run.jsonl", run_id="r1")

        journal.append({"event": "one"})
        journal.append({"event": "two", "run_id": "override"})

        events = list(iter_events(journal.path))
        assert [event["event"] for event in events] == ["one", "two"]
        assert events[0]["run_id"] == "r1"
        assert events[1]["run_id"] == "override"
        assert "ts" in events[0]
