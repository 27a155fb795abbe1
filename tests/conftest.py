"""Shared fixtures for cropbatch tests."""

from __future__ import annotations

import json
from pathlib import Path
import threading
from typing import Any, Callable

import numpy as np
import pytest
from PIL import Image

from cropbatch.pipeline.listener import BatchListener


def gradient_pixels(width: int, height: int) -> np.ndarray:
    """Deterministic RGB pixels where every position is distinguishable."""

    ys, xs = np.mgrid[0:height, 0:width]
    return np.stack(
        [xs % 256, ys % 256, (xs * 7 + ys * 13) % 256],
        axis=-1,
    ).astype(np.uint8)


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Write a gradient PNG of the given size and return its path."""

    def _make(path: Path, width: int = 40, height: int = 30, mode: str = "RGB") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.fromarray(gradient_pixels(width, height))
        if mode != "RGB":
            image = image.convert(mode)
        image.save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def write_manifest() -> Callable[..., Path]:
    """Write a manifest payload as JSON and return its path."""

    def _write(directory: Path, name: str, payload: Any) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


class RecordingListener(BatchListener):
    """Collect every hook call as (hook, args) in arrival order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._lock = threading.Lock()

    def _record(self, hook: str, *args: Any) -> None:
        with self._lock:
            self.calls.append((hook, args))

    def hooks(self) -> list[str]:
        return [hook for hook, _ in self.calls]

    def args_for(self, hook: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == hook]

    def on_start(self, progress):
        self._record("on_start", progress)

    def on_manifest_queued(self, manifest, index, total):
        self._record("on_manifest_queued", manifest, index, total)

    def on_manifest_start(self, manifest, index, total):
        self._record("on_manifest_start", manifest, index, total)

    def on_manifest_done(self, manifest, ok):
        self._record("on_manifest_done", manifest, ok)

    def on_image_start(self, image_path):
        self._record("on_image_start", image_path)

    def on_image_done(self, image_path, crops_ok, crops_failed):
        self._record("on_image_done", image_path, crops_ok, crops_failed)

    def on_crop_done(self, image_path, output_path):
        self._record("on_crop_done", image_path, output_path)

    def on_progress(self, progress):
        self._record("on_progress", progress)

    def on_error(self, where, message, exc):
        self._record("on_error", where, message, exc)

    def on_complete(self, result):
        self._record("on_complete", result)


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()
