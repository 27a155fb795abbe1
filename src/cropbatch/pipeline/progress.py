"""Run-scoped progress counters and their immutable snapshots."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
import threading
from typing import Any


@dataclass(frozen=True, slots=True)
class BatchProgress:
    """Point-in-time view of the eight run counters."""

    manifests_queued: int = 0
    manifests_processed: int = 0
    manifests_skipped: int = 0
    manifests_failed: int = 0
    images_processed: int = 0
    crops_queued: int = 0
    crops_done: int = 0
    crops_failed: int = 0


COUNTER_NAMES: tuple[str, ...] = tuple(item.name for item in fields(BatchProgress))


@dataclass(frozen=True, slots=True)
class BatchResult(BatchProgress):
    """Terminal outcome of one run."""

    started_at: datetime | None = None
    ended_at: datetime | None = None

    @classmethod
    def from_progress(
        cls,
        progress: BatchProgress,
        started_at: datetime,
        ended_at: datetime,
    ) -> BatchResult:
        counts = {name: getattr(progress, name) for name in COUNTER_NAMES}
        return cls(started_at=started_at, ended_at=ended_at, **counts)

    @property
    def elapsed_seconds(self) -> float:
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def ok(self) -> bool:
        """True when no crop and no manifest failed."""
        return self.crops_failed == 0 and self.manifests_failed == 0

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["started_at"] = self.started_at.isoformat() if self.started_at else None
        payload["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        payload["elapsed_seconds"] = self.elapsed_seconds
        return payload

    def summary(self) -> str:
        return (
            f"manifests queued={self.manifests_queued} processed={self.manifests_processed} "
            f"skipped={self.manifests_skipped} failed={self.manifests_failed} "
            f"images={self.images_processed} crops queued={self.crops_queued} "
            f"done={self.crops_done} failed={self.crops_failed} "
            f"elapsed={max(1, int(self.elapsed_seconds))}s"
        )


class ProgressCounters:
    """Mutable counters owned by a single run.

    Increments are serialized by one lock; a snapshot reads each field
    independently, so fields may be a step apart from each other.
    """

    def __init__(self, **initial: int) -> None:
        unknown = set(initial) - set(COUNTER_NAMES)
        if unknown:
            raise ValueError(f"Unknown counters: {', '.join(sorted(unknown))}")
        self._lock = threading.Lock()
        self._values = {name: int(initial.get(name, 0)) for name in COUNTER_NAMES}

    def add(self, name: str, amount: int = 1) -> int:
        if name not in self._values:
            raise KeyError(name)
        if amount < 0:
            raise ValueError(f"Counters only grow, got amount={amount}")
        with self._lock:
            self._values[name] += amount
            return self._values[name]

    def get(self, name: str) -> int:
        return self._values[name]

    def snapshot(self) -> BatchProgress:
        return BatchProgress(**{name: self._values[name] for name in COUNTER_NAMES})
