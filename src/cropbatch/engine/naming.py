"""Collision-free output filename allocation."""

from __future__ import annotations

from pathlib import Path
import threading

from cropbatch.manifest.schema import CropSpec

OUTPUT_SUFFIX = ".png"


def counter_filename(annotation: str, width: int, height: int, index: int) -> str:
    """Format ``{annotation}_{w}x{h}_{00001}.png``."""

    return f"{annotation}_{width}x{height}_{index:05d}{OUTPUT_SUFFIX}"


class OutputNamer:
    """Hand out destination paths that no other crop of this run will get.

    Counters are keyed by (sink, annotation, size). Every allocation checks the
    disk and a set of names already handed out, all under a single lock
    shared by the worker pool. Another process writing the same sink can
    still race us between the check and the write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[tuple[str, str, int, int], int] = {}
        self._reserved: set[Path] = set()

    def _is_free(self, path: Path) -> bool:
        return path not in self._reserved and not path.exists()

    def allocate(self, sink_dir: Path, crop: CropSpec, respect_saved_as: bool) -> Path:
        sink_dir = Path(sink_dir).resolve()
        with self._lock:
            if respect_saved_as and crop.saved_as:
                # Only the basename is honored; savedAs never escapes the sink.
                name = Path(crop.saved_as).name
                candidate = sink_dir / name
                if name not in ("", ".", "..") and self._is_free(candidate):
                    self._reserved.add(candidate)
                    return candidate

            key = (str(sink_dir), crop.annotation, crop.rect.w, crop.rect.h)
            index = self._counters.get(key, 0)
            while True:
                index += 1
                candidate = sink_dir / counter_filename(
                    crop.annotation, crop.rect.w, crop.rect.h, index
                )
                if self._is_free(candidate):
                    self._counters[key] = index
                    self._reserved.add(candidate)
                    return candidate

    def release(self, path: Path) -> None:
        """Forget a reservation whose write failed."""

        with self._lock:
            self._reserved.discard(Path(path).resolve())
