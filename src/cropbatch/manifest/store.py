"""Discover, parse and group crop manifests."""

from __future__ import annotations

from fnmatch import fnmatchcase
import json
import logging
import os
from pathlib import Path
from typing import Any

from cropbatch.errors import ManifestError
from cropbatch.manifest.schema import (
    CropSpec,
    ManifestSpec,
    optional_str,
    parse_crop,
    parse_default_size,
)
from cropbatch.observability.logging import get_logger, log_event
from cropbatch.storage.atomic import read_json

MANIFEST_PATTERN = "crop_metadata_*.json"

_LOGGER = get_logger("cropbatch.manifest")


def is_manifest_name(name: str) -> bool:
    """Return true for filenames like ``crop_metadata_<anything>.json``."""

    return fnmatchcase(name, MANIFEST_PATTERN)


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as exc:
        log_event(
            _LOGGER,
            "manifest_dir_unreadable",
            level=logging.WARNING,
            directory=str(directory),
            error=f"{type(exc).__name__}: {exc}",
        )
        return []
    entries.sort(key=lambda entry: entry.name.casefold())
    return entries


def _walk(directory: Path, found: list[Path]) -> None:
    for entry in _sorted_entries(directory):
        if entry.is_dir(follow_symlinks=False):
            _walk(Path(entry.path), found)
        elif entry.is_file() and is_manifest_name(entry.name):
            found.append(Path(entry.path))


def discover_manifests(root: Path) -> list[Path]:
    """Return every manifest under ``root`` in deterministic traversal order.

    Directories and files are visited in case-insensitive name order at every
    level, so repeated runs over an unchanged tree see the same sequence.
    """

    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"Manifest root does not exist: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Manifest root must be a directory: {root}")

    found: list[Path] = []
    _walk(root, found)
    return found


def parse_manifest(path: Path) -> ManifestSpec:
    """Read one manifest file into a ManifestSpec.

    Raises:
        ManifestError: The file is unreadable, not UTF-8, not a JSON object,
            or lacks a ``crops`` array.
    """

    path = Path(path)
    try:
        payload: Any = read_json(path)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ManifestError(f"Manifest must be a JSON object: {path}")
    if "crops" not in payload:
        raise ManifestError(f"Missing key 'crops' in {path}")
    crops = payload["crops"]
    if not isinstance(crops, list):
        raise ManifestError(f"'crops' must be an array in {path}")

    return ManifestSpec(
        path=path,
        crops=tuple(crops),
        source_dir=optional_str(payload, "sourceDir"),
        sink_dir=optional_str(payload, "sinkDir"),
        default_size=parse_default_size(payload),
    )


def _blank_image_path(entry: dict[str, Any]) -> bool:
    value = entry.get("imagePath")
    return value is None or (isinstance(value, str) and not value.strip())


def group_by_image(manifest: ManifestSpec) -> dict[str, list[CropSpec]]:
    """Normalize crops and group them by source image, preserving order.

    Entries without an ``imagePath`` are dropped. Any other malformed entry
    fails the whole manifest with ManifestError.
    """

    groups: dict[str, list[CropSpec]] = {}
    for index, entry in enumerate(manifest.crops):
        if isinstance(entry, dict) and _blank_image_path(entry):
            continue
        try:
            crop = parse_crop(entry, manifest.default_size)
        except ManifestError as exc:
            raise ManifestError(f"{manifest.path} crops[{index}]: {exc}") from exc
        groups.setdefault(crop.image_path, []).append(crop)
    return groups
