"""Done-marker helpers that make manifest runs resumable."""

from __future__ import annotations

from pathlib import Path

from cropbatch.storage.atomic import atomic_write_text

DONE_SUFFIX = ".done"


def done_marker_path(manifest_path: Path) -> Path:
    """Return the sibling ``<manifest-name>.done`` path."""

    return manifest_path.with_name(manifest_path.name + DONE_SUFFIX)


def is_done(manifest_path: Path) -> bool:
    """Return true when the manifest was already fully processed."""

    return done_marker_path(manifest_path).exists()


def write_done_marker(manifest_path: Path) -> Path:
    """Create the empty done-marker for a manifest."""

    marker = done_marker_path(manifest_path)
    atomic_write_text(marker, "")
    return marker
