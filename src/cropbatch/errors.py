"""Exception taxonomy for batch cropping failures."""

from __future__ import annotations


class CropBatchError(Exception):
    """Base class for all cropbatch failures."""


class ManifestError(CropBatchError, ValueError):
    """A manifest could not be read, decoded or normalized."""


class ImageLoadError(CropBatchError, OSError):
    """A source image could not be read or decoded."""


class CropBoundsError(CropBatchError, ValueError):
    """A crop rectangle falls outside its source image."""


class UnresolvedSinkError(CropBatchError, RuntimeError):
    """No usable output directory could be found for a crop."""


class UsageError(CropBatchError, ValueError):
    """Command-line input that cannot start a run."""
