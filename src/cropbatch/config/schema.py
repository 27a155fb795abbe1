"""Dataclass-based run configuration for cropbatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cropbatch.workers.pool import default_thread_count

DEFAULT_SHUTDOWN_GRACE_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class BatchConfig:
    """Immutable settings for one batch run.

    Attributes:
        meta_root: Directory searched recursively for manifests.
        source_fallback: Source directory used when a manifest's own
            ``sourceDir`` is missing or unusable.
        sink_fallback: Output directory used when neither the crop nor the
            manifest names a usable sink.
        threads: Size of the per-image worker pool.
        dry_run: Validate everything but write no crops and no done-markers.
        respect_saved_as: Reuse a crop's ``savedAs`` filename when it is free.
        force: Reprocess manifests that already carry a done-marker.
        shutdown_grace_seconds: How long pool shutdown waits for in-flight
            tasks before abandoning them.
    """

    meta_root: Path
    source_fallback: Path | None = None
    sink_fallback: Path | None = None
    threads: int = field(default_factory=default_thread_count)
    dry_run: bool = False
    respect_saved_as: bool = False
    force: bool = False
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS

    def __post_init__(self) -> None:
        if self.meta_root is None:
            raise ValueError("meta_root is required.")
        object.__setattr__(self, "meta_root", Path(self.meta_root))
        if self.source_fallback is not None:
            object.__setattr__(self, "source_fallback", Path(self.source_fallback))
        if self.sink_fallback is not None:
            object.__setattr__(self, "sink_fallback", Path(self.sink_fallback))
        object.__setattr__(self, "threads", max(1, int(self.threads)))
        if self.shutdown_grace_seconds < 0:
            raise ValueError(
                f"shutdown_grace_seconds must be >= 0, got {self.shutdown_grace_seconds}"
            )
