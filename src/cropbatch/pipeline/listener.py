"""Observer hooks a batch run reports its lifecycle to."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from cropbatch.observability.logging import get_logger, log_event
from cropbatch.pipeline.progress import BatchProgress, BatchResult
from cropbatch.storage.journal import EventJournal


class BatchListener:
    """Base observer; override only the hooks you need.

    Image and crop hooks are called from worker threads, everything else from
    the coordinating thread.
    """

    def on_start(self, progress: BatchProgress) -> None:
        pass

    def on_manifest_queued(self, manifest: Path, index: int, total: int) -> None:
        pass

    def on_manifest_start(self, manifest: Path, index: int, total: int) -> None:
        pass

    def on_manifest_done(self, manifest: Path, ok: bool) -> None:
        pass

    def on_image_start(self, image_path: str) -> None:
        pass

    def on_image_done(self, image_path: str, crops_ok: int, crops_failed: int) -> None:
        pass

    def on_crop_done(self, image_path: str, output_path: Path) -> None:
        pass

    def on_progress(self, progress: BatchProgress) -> None:
        pass

    def on_error(self, where: str, message: str, exc: BaseException | None) -> None:
        pass

    def on_complete(self, result: BatchResult) -> None:
        pass


class ListenerGroup(BatchListener):
    """Fan every hook out to several listeners in order.

    A listener that raises is logged and skipped; the rest still see the event.
    """

    def __init__(
        self,
        listeners: Iterable[BatchListener],
        logger: logging.Logger | None = None,
    ) -> None:
        self.listeners = list(listeners)
        self.logger = logger or get_logger("cropbatch.listeners")

    def _fan_out(self, hook: str, *args: Any) -> None:
        for listener in self.listeners:
            try:
                getattr(listener, hook)(*args)
            except Exception as exc:
                log_event(
                    self.logger,
                    "listener_failed",
                    level=logging.ERROR,
                    hook=hook,
                    listener=type(listener).__name__,
                    error=f"{type(exc).__name__}: {exc}",
                )

    def on_start(self, progress: BatchProgress) -> None:
        self._fan_out("on_start", progress)

    def on_manifest_queued(self, manifest: Path, index: int, total: int) -> None:
        self._fan_out("on_manifest_queued", manifest, index, total)

    def on_manifest_start(self, manifest: Path, index: int, total: int) -> None:
        self._fan_out("on_manifest_start", manifest, index, total)

    def on_manifest_done(self, manifest: Path, ok: bool) -> None:
        self._fan_out("on_manifest_done", manifest, ok)

    def on_image_start(self, image_path: str) -> None:
        self._fan_out("on_image_start", image_path)

    def on_image_done(self, image_path: str, crops_ok: int, crops_failed: int) -> None:
        self._fan_out("on_image_done", image_path, crops_ok, crops_failed)

    def on_crop_done(self, image_path: str, output_path: Path) -> None:
        self._fan_out("on_crop_done", image_path, output_path)

    def on_progress(self, progress: BatchProgress) -> None:
        self._fan_out("on_progress", progress)

    def on_error(self, where: str, message: str, exc: BaseException | None) -> None:
        self._fan_out("on_error", where, message, exc)

    def on_complete(self, result: BatchResult) -> None:
        self._fan_out("on_complete", result)



class LoggingListener(BatchListener):
    """Mirror run events into structured log lines."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger("cropbatch.run")

    def on_manifest_start(self, manifest: Path, index: int, total: int) -> None:
        log_event(self.logger, "manifest_started", manifest=str(manifest), index=index, total=total)

    def on_manifest_done(self, manifest: Path, ok: bool) -> None:
        log_event(self.logger, "manifest_finished", manifest=str(manifest), ok=ok)

    def on_image_done(self, image_path: str, crops_ok: int, crops_failed: int) -> None:
        log_event(
            self.logger,
            "image_finished",
            level=logging.DEBUG,
            image=image_path,
            crops_ok=crops_ok,
            crops_failed=crops_failed,
        )

    def on_crop_done(self, image_path: str, output_path: Path) -> None:
        log_event(
            self.logger,
            "crop_written",
            level=logging.DEBUG,
            image=image_path,
            output=str(output_path),
        )


class JournalListener(BatchListener):
    """Append one JSON line per lifecycle event to an EventJournal."""

    def __init__(self, journal: EventJournal) -> None:
        self.journal = journal

    def on_start(self, progress: BatchProgress) -> None:
        self.journal.append({"event": "batch_started", "manifests_queued": progress.manifests_queued})

    def on_manifest_start(self, manifest: Path, index: int, total: int) -> None:
        self.journal.append(
            {"event": "manifest_started", "manifest": str(manifest), "index": index, "total": total}
        )

    def on_manifest_done(self, manifest: Path, ok: bool) -> None:
        self.journal.append({"event": "manifest_finished", "manifest": str(manifest), "ok": ok})

    def on_image_done(self, image_path: str, crops_ok: int, crops_failed: int) -> None:
        self.journal.append(
            {
                "event": "image_finished",
                "image": image_path,
                "crops_ok": crops_ok,
                "crops_failed": crops_failed,
            }
        )

    def on_crop_done(self, image_path: str, output_path: Path) -> None:
        self.journal.append({"event": "crop_written", "image": image_path, "output": str(output_path)})

    def on_error(self, where: str, message: str, exc: BaseException | None) -> None:
        self.journal.append({"event": "error", "where": where, "error": message})

    def on_complete(self, result: BatchResult) -> None:
        self.journal.append({"event": "batch_finished", **result.as_dict()})
