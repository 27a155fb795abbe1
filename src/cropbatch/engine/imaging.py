"""Decode source images and cut crop rectangles out of them."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from cropbatch.errors import CropBoundsError, ImageLoadError
from cropbatch.manifest.schema import CropRect


@dataclass(frozen=True, slots=True)
class SourceImage:
    """A decoded source image held as an (H, W, 3) uint8 RGB array."""

    path: Path
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


def load_image(path: Path) -> SourceImage:
    """Decode ``path`` once, flattening it to opaque RGB.

    Raises:
        ImageLoadError: The file is missing, unreadable or not an image.
    """

    path = Path(path)
    if not path.is_file():
        raise ImageLoadError(f"Cannot read image: {path}")
    try:
        with Image.open(path) as image:
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageLoadError(f"Cannot decode image: {path} ({exc})") from exc
    return SourceImage(path=path, pixels=np.asarray(rgb, dtype=np.uint8))


def validate_bounds(image: SourceImage, rect: CropRect) -> None:
    """Raise CropBoundsError unless ``rect`` lies fully inside ``image``."""

    if rect.w <= 0 or rect.h <= 0:
        raise CropBoundsError(f"Crop size must be positive, got {rect.size_label}")
    if rect.x1 < 0 or rect.y1 < 0:
        raise CropBoundsError(f"Crop origin must be >= 0, got ({rect.x1}, {rect.y1})")
    if rect.x2 > image.width or rect.y2 > image.height:
        raise CropBoundsError(
            f"Crop ({rect.x1}, {rect.y1}, {rect.size_label}) exceeds image "
            f"{image.width}x{image.height}: {image.path}"
        )


def crop(image: SourceImage, rect: CropRect) -> Image.Image:
    """Return exactly the ``rect.w`` x ``rect.h`` region as an RGB image."""

    region = image.pixels[rect.y1 : rect.y2, rect.x1 : rect.x2]
    return Image.fromarray(np.ascontiguousarray(region))
