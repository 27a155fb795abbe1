"""Manifest and crop models plus the crop-coordinate normalizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

from cropbatch.errors import ManifestError

DEFAULT_ANNOTATION = "Crop"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True, slots=True)
class CropRect:
    """Pixel rectangle in (x1, y1, w, h) form."""

    x1: int
    y1: int
    w: int
    h: int

    @property
    def x2(self) -> int:
        """Exclusive right edge."""
        return self.x1 + self.w

    @property
    def y2(self) -> int:
        """Exclusive bottom edge."""
        return self.y1 + self.h

    @property
    def size_label(self) -> str:
        return f"{self.w}x{self.h}"


@dataclass(frozen=True, slots=True)
class CropSpec:
    """One normalized crop instruction."""

    image_path: str
    annotation: str
    rect: CropRect
    saved_as: str | None = None
    sink_override: str | None = None


@dataclass(frozen=True, slots=True)
class ManifestSpec:
    """A parsed manifest file.

    ``resolved_source`` and ``resolved_sink`` stay ``None`` until
    :func:`cropbatch.manifest.paths.resolve_roots` returns a resolved copy.
    """

    path: Path
    crops: tuple[dict[str, Any], ...]
    source_dir: str | None = None
    sink_dir: str | None = None
    default_size: tuple[int | None, int | None] = (None, None)
    resolved_source: Path | None = field(default=None, compare=False)
    resolved_sink: Path | None = field(default=None, compare=False)


def sanitize_annotation(value: Any) -> str:
    """Make an annotation safe for use inside a filename."""

    if not isinstance(value, str) or not value.strip():
        return DEFAULT_ANNOTATION
    return _UNSAFE_CHARS.sub("_", value)


def optional_str(obj: dict[str, Any], key: str) -> str | None:
    """Return a non-blank string value or ``None``."""

    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ManifestError(f"'{key}' must be a string, got {type(value).__name__}")
    return value if value.strip() else None


def optional_int(obj: dict[str, Any], key: str) -> int | None:
    """Return an integer value, ``None`` when the key is absent or null."""

    value = obj.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ManifestError(f"'{key}' must be an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ManifestError(f"'{key}' must be an integer, got {value!r}")


def _optional_point(obj: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ManifestError(f"'{key}' must be an object with x and y")
    return value


def parse_default_size(payload: dict[str, Any]) -> tuple[int | None, int | None]:
    """Read the manifest-level ``defaultCropSize`` block."""

    block = payload.get("defaultCropSize")
    if block is None:
        return (None, None)
    if not isinstance(block, dict):
        raise ManifestError("'defaultCropSize' must be an object with w and h")
    return (optional_int(block, "w"), optional_int(block, "h"))


def parse_rect(
    entry: dict[str, Any],
    default_size: tuple[int | None, int | None] = (None, None),
) -> CropRect:
    """Normalize either coordinate encoding into a CropRect.

    Explicit ``x1``/``y1``/``w``/``h`` always win. Missing origin values come
    from ``cropTopLeft``; missing sizes are derived from the inclusive
    ``cropBottomRight`` corner, then from the manifest default.
    """

    x1 = optional_int(entry, "x1")
    y1 = optional_int(entry, "y1")
    w = optional_int(entry, "w")
    h = optional_int(entry, "h")

    top_left = _optional_point(entry, "cropTopLeft")
    bottom_right = _optional_point(entry, "cropBottomRight")

    if top_left is not None:
        if x1 is None:
            x1 = optional_int(top_left, "x")
        if y1 is None:
            y1 = optional_int(top_left, "y")

    if (w is None or h is None) and bottom_right is not None and x1 is not None and y1 is not None:
        x2 = optional_int(bottom_right, "x")
        y2 = optional_int(bottom_right, "y")
        # A half-specified corner contributes nothing.
        if x2 is not None and y2 is not None:
            if w is None:
                w = x2 - x1 + 1
            if h is None:
                h = y2 - y1 + 1

    default_w, default_h = default_size
    if w is None:
        w = default_w
    if h is None:
        h = default_h

    missing = [
        name
        for name, value in (("x1", x1), ("y1", y1), ("w", w), ("h", h))
        if value is None
    ]
    if missing:
        raise ManifestError(f"Missing crop coordinates/size: {', '.join(missing)}")
    return CropRect(x1=x1, y1=y1, w=w, h=h)


def parse_crop(
    entry: Any,
    default_size: tuple[int | None, int | None] = (None, None),
) -> CropSpec:
    """Build a CropSpec from one raw ``crops[]`` entry."""

    if not isinstance(entry, dict):
        raise ManifestError(f"Crop entry must be a JSON object, got {type(entry).__name__}")
    image_path = optional_str(entry, "imagePath")
    if image_path is None:
        raise ManifestError("Crop entry is missing 'imagePath'")

    return CropSpec(
        image_path=image_path,
        annotation=sanitize_annotation(entry.get("annotation")),
        rect=parse_rect(entry, default_size),
        saved_as=optional_str(entry, "savedAs"),
        sink_override=optional_str(entry, "sinkDir"),
    )
