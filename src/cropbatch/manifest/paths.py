"""Source and sink directory resolution."""

from __future__ import annotations

from dataclasses import replace
import os
from pathlib import Path

from cropbatch.errors import UnresolvedSinkError
from cropbatch.manifest.schema import CropSpec, ManifestSpec


def _readable_dir(candidate: str | Path | None) -> Path | None:
    if candidate is None or not str(candidate).strip():
        return None
    path = Path(candidate)
    if path.is_dir() and os.access(path, os.R_OK | os.X_OK):
        return path
    return None


def _usable_sink(candidate: str | Path | None, create: bool) -> Path | None:
    if candidate is None or not str(candidate).strip():
        return None
    path = Path(candidate)
    if path.is_dir():
        return path
    if path.exists():
        return None
    if not create:
        return path
    try:
        # Workers targeting the same sink may race here.
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None
    return path if path.is_dir() else None


def best_source(source_dir: str | None, fallback: Path | None) -> Path | None:
    """Pick the manifest source dir, else the fallback, else nothing."""

    return _readable_dir(source_dir) or _readable_dir(fallback)


def best_sink(*candidates: str | Path | None, create: bool = True) -> Path | None:
    """Return the first candidate that is, or can become, a directory."""

    for candidate in candidates:
        sink = _usable_sink(candidate, create)
        if sink is not None:
            return sink
    return None


def resolve_roots(
    manifest: ManifestSpec,
    source_fallback: Path | None,
    sink_fallback: Path | None,
    *,
    create: bool = True,
) -> ManifestSpec:
    """Return a copy of ``manifest`` with its source and sink resolved."""

    return replace(
        manifest,
        resolved_source=best_source(manifest.source_dir, source_fallback),
        resolved_sink=best_sink(manifest.sink_dir, sink_fallback, create=create),
    )


def resolve_sink(
    crop: CropSpec,
    manifest: ManifestSpec,
    sink_fallback: Path | None,
    *,
    create: bool = True,
) -> Path:
    """Pick the output directory for one crop.

    Priority is the crop's own ``sinkDir``, then the manifest ``sinkDir``,
    then the run-level fallback.
    """

    sink = best_sink(crop.sink_override, manifest.sink_dir, sink_fallback, create=create)
    if sink is None:
        raise UnresolvedSinkError(
            f"No usable sink for {crop.image_path} ({crop.annotation} {crop.rect.size_label})"
        )
    return sink


def resolve_image_path(image_path: str, resolved_source: Path | None) -> Path:
    """Locate a crop's source image on disk."""

    path = Path(image_path)
    if path.is_absolute() or resolved_source is None:
        return path
    return resolved_source / path
