"""Temp-file-and-rename writers for crops, markers and reports."""

from __future__ import annotations

from contextlib import contextmanager
import json
import os
from pathlib import Path
import shutil
import tempfile
from typing import IO, Any, Iterator

from PIL import Image


def _move_into_place(tmp_name: str, destination: Path) -> None:
    try:
        os.replace(tmp_name, destination)
    except OSError:
        # Some mounts refuse rename-over; a move still never exposes a partial file.
        shutil.move(tmp_name, destination)


@contextmanager
def _staged(destination: Path, mode: str, suffix: str = "") -> Iterator[IO[Any]]:
    """Yield a handle on a hidden sibling temp file, published on clean exit.

    The temp file is removed whether the body succeeds or raises.
    """

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=suffix, dir=str(destination.parent)
    )
    try:
        encoding = None if "b" in mode else "utf-8"
        with os.fdopen(fd, mode, encoding=encoding) as handle:
            yield handle
        _move_into_place(tmp_name, destination)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


def atomic_write_image(path: Path, image: Image.Image, format: str = "PNG") -> None:
    """Encode ``image`` and rename it over ``path`` in one step."""

    with _staged(path, "wb", suffix=".tmp") as handle:
        image.save(handle, format=format)


def atomic_write_text(path: Path, content: str) -> None:
    with _staged(path, "w") as handle:
        handle.write(content)


def atomic_write_json(path: Path, payload: Any, indent: int = 2) -> None:
    """Write a sorted, indented JSON document atomically."""

    atomic_write_text(path, json.dumps(payload, indent=indent, sort_keys=True, default=str) + "\n")


def read_json(path: Path) -> Any:
    """Decode a UTF-8 JSON file.

    Raises OSError, UnicodeDecodeError or json.JSONDecodeError unchanged.
    """

    raw = Path(path).read_bytes()
    return json.loads(raw.decode("utf-8"))
