"""Manifest-driven batch cropping with a bounded worker pool."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from enum import Enum
import logging
from pathlib import Path
import threading
from typing import Any

from cropbatch.config.schema import BatchConfig
from cropbatch.engine.imaging import SourceImage, crop, load_image, validate_bounds
from cropbatch.engine.naming import OutputNamer
from cropbatch.errors import ImageLoadError
from cropbatch.manifest.paths import resolve_image_path, resolve_roots, resolve_sink
from cropbatch.manifest.schema import CropSpec, ManifestSpec
from cropbatch.manifest.store import discover_manifests, group_by_image, parse_manifest
from cropbatch.observability.logging import get_logger, log_event
from cropbatch.pipeline.listener import BatchListener
from cropbatch.pipeline.progress import BatchProgress, BatchResult, ProgressCounters
from cropbatch.storage.atomic import atomic_write_image
from cropbatch.storage.markers import is_done, write_done_marker


_LOGGER = get_logger("cropbatch.orchestrator")


class RunState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    MANIFEST_LOOP = "manifest_loop"
    COMPLETED = "completed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class BatchProcessor:
    """Run crop manifests under a meta-root, one manifest at a time.

    Images inside a manifest are cropped in parallel on a fixed thread pool;
    the coordinating thread waits for all of them before moving on, so
    done-markers are only ever touched from that thread.

    ``cancel()`` is advisory. It is polled before each manifest, each image
    task and each crop; a decode or encode already in progress runs to the
    end. The flag is not cleared by a later ``run``; use a new processor.
    """

    def __init__(self) -> None:
        self._cancel = threading.Event()
        self._run_lock = threading.Lock()
        self._progress_lock = threading.Lock()
        self._state = RunState.IDLE
        self._counters: ProgressCounters | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Ask the current run to stop at its next checkpoint."""

        self._cancel.set()

    def progress(self) -> BatchProgress:
        """Snapshot of the current (or last) run's counters."""

        if self._counters is None:
            return BatchProgress()
        return self._counters.snapshot()

    def run_async(
        self,
        config: BatchConfig,
        listener: BatchListener | None = None,
    ) -> Future[BatchResult]:
        """Start ``run`` on a dedicated thread and return its future."""

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cropbatch-run")
        try:
            return executor.submit(self.run, config, listener)
        finally:
            executor.shutdown(wait=False)

    def run(self, config: BatchConfig, listener: BatchListener | None = None) -> BatchResult:
        """Process every manifest under ``config.meta_root``.

        Failures are counted and reported to ``listener``; they never escape
        as exceptions. The returned BatchResult is the single terminal value
        of the run.
        """

        if not self._run_lock.acquire(blocking=False):
            raise RuntimeError("BatchProcessor is already running.")
        try:
            return self._run(config, listener or BatchListener())
        finally:
            self._run_lock.release()

    def _notify(self, listener: BatchListener, hook: str, *args: Any) -> None:
        try:
            getattr(listener, hook)(*args)
        except Exception as exc:
            log_event(
                _LOGGER,
                "listener_failed",
                level=logging.ERROR,
                hook=hook,
                error=_describe(exc),
            )

    def _run(self, config: BatchConfig, listener: BatchListener) -> BatchResult:
        started_at = _now()
        counters = ProgressCounters()
        self._counters = counters
        namer = OutputNamer()

        self._state = RunState.SCANNING
        try:
            manifests = discover_manifests(config.meta_root)
        except OSError as exc:
            manifests = []
            log_event(
                _LOGGER,
                "scan_failed",
                level=logging.ERROR,
                meta_root=str(config.meta_root),
                error=_describe(exc),
            )
            self._notify(listener, "on_error", "scan", f"{config.meta_root}: {exc}", exc)

        total = len(manifests)
        counters.add("manifests_queued", total)
        for index, manifest_path in enumerate(manifests, start=1):
            self._notify(listener, "on_manifest_queued", manifest_path, index, total)
        self._notify(listener, "on_start", counters.snapshot())
        log_event(
            _LOGGER,
            "batch_started",
            meta_root=str(config.meta_root),
            manifests=total,
            threads=config.threads,
            dry_run=config.dry_run,
            force=config.force,
        )

        self._state = RunState.MANIFEST_LOOP
        pending: list[Future[None]] = []
        pool = ThreadPoolExecutor(max_workers=config.threads, thread_name_prefix="cropbatch")
        try:
            for index, manifest_path in enumerate(manifests, start=1):
                if self._cancel.is_set():
                    log_event(_LOGGER, "batch_cancelled", remaining=total - index + 1)
                    break
                self._process_manifest(
                    config=config,
                    manifest_path=manifest_path,
                    index=index,
                    total=total,
                    pool=pool,
                    pending=pending,
                    counters=counters,
                    namer=namer,
                    listener=listener,
                )
        finally:
            self._shutdown_pool(pool, pending, config.shutdown_grace_seconds)

        result = BatchResult.from_progress(counters.snapshot(), started_at, _now())
        self._state = RunState.COMPLETED
        log_event(_LOGGER, "batch_finished", cancelled=self.cancelled, **result.as_dict())
        self._notify(listener, "on_complete", result)
        return result

    def _shutdown_pool(
        self,
        pool: ThreadPoolExecutor,
        pending: list[Future[None]],
        grace_seconds: float,
    ) -> None:
        pool.shutdown(wait=False, cancel_futures=True)
        if not pending:
            return
        _, not_done = wait(pending, timeout=grace_seconds)
        if not_done:
            # Worker threads cannot be killed; their results are simply dropped.
            log_event(
                _LOGGER,
                "pool_tasks_abandoned",
                level=logging.WARNING,
                count=len(not_done),
                grace_seconds=grace_seconds,
            )

    def _process_manifest(
        self,
        *,
        config: BatchConfig,
        manifest_path: Path,
        index: int,
        total: int,
        pool: ThreadPoolExecutor,
        pending: list[Future[None]],
        counters: ProgressCounters,
        namer: OutputNamer,
        listener: BatchListener,
    ) -> None:
        if not config.force and is_done(manifest_path):
            counters.add("manifests_skipped")
            log_event(_LOGGER, "manifest_skipped", manifest=str(manifest_path))
            return

        self._notify(listener, "on_manifest_start", manifest_path, index, total)
        ok = True
        try:
            manifest = parse_manifest(manifest_path)
            groups = group_by_image(manifest)
            manifest = resolve_roots(
                manifest,
                config.source_fallback,
                config.sink_fallback,
                create=not config.dry_run,
            )
            counters.add("crops_queued", sum(len(crops) for crops in groups.values()))

            pending.clear()
            for image_path, crops in groups.items():
                pending.append(
                    pool.submit(
                        self._process_image,
                        config,
                        manifest,
                        image_path,
                        crops,
                        counters,
                        namer,
                        listener,
                    )
                )
            self._await_tasks(pending)
            pending.clear()

            if self._cancel.is_set():
                # Partially cropped manifests stay unmarked so a rerun resumes them.
                ok = False
                log_event(_LOGGER, "manifest_interrupted", manifest=str(manifest_path))
            else:
                if not config.dry_run:
                    write_done_marker(manifest_path)
                counters.add("manifests_processed")
        except Exception as exc:
            ok = False
            counters.add("manifests_failed")
            log_event(
                _LOGGER,
                "manifest_failed",
                level=logging.ERROR,
                manifest=str(manifest_path),
                error=_describe(exc),
            )
            self._notify(listener, "on_error", "manifest", f"{manifest_path}: {exc}", exc)

        self._notify(listener, "on_manifest_done", manifest_path, ok)
        self._report_progress(listener, counters)

    def _report_progress(self, listener: BatchListener, counters: ProgressCounters) -> None:
        # Snapshot and delivery share a lock so listeners never see a counter go backwards.
        with self._progress_lock:
            self._notify(listener, "on_progress", counters.snapshot())

    def _await_tasks(self, futures: list[Future[None]]) -> None:
        for future in futures:
            try:
                future.result()
            except Exception as exc:
                # Tasks count their own failures; anything left here is a bug.
                log_event(
                    _LOGGER,
                    "image_task_crashed",
                    level=logging.ERROR,
                    error=_describe(exc),
                )

    def _process_image(
        self,
        config: BatchConfig,
        manifest: ManifestSpec,
        image_path: str,
        crops: list[CropSpec],
        counters: ProgressCounters,
        namer: OutputNamer,
        listener: BatchListener,
    ) -> None:
        if self._cancel.is_set():
            return
        self._notify(listener, "on_image_start", image_path)

        try:
            image = load_image(resolve_image_path(image_path, manifest.resolved_source))
        except ImageLoadError as exc:
            counters.add("crops_failed", len(crops))
            log_event(
                _LOGGER,
                "image_failed",
                level=logging.WARNING,
                manifest=str(manifest.path),
                image=image_path,
                crops=len(crops),
                error=str(exc),
            )
            self._notify(listener, "on_error", "image", str(exc), exc)
            return

        crops_ok = 0
        crops_failed = 0
        for spec in crops:
            if self._cancel.is_set():
                break
            try:
                self._process_crop(config, manifest, image, spec, namer, listener)
            except Exception as exc:
                crops_failed += 1
                counters.add("crops_failed")
                log_event(
                    _LOGGER,
                    "crop_failed",
                    level=logging.WARNING,
                    manifest=str(manifest.path),
                    image=image_path,
                    annotation=spec.annotation,
                    rect=spec.rect.size_label,
                    error=_describe(exc),
                )
                self._notify(listener, "on_error", "crop", f"{image_path}: {exc}", exc)
                continue
            crops_ok += 1
            counters.add("crops_done")

        counters.add("images_processed")
        self._notify(listener, "on_image_done", image_path, crops_ok, crops_failed)
        self._report_progress(listener, counters)

    def _process_crop(
        self,
        config: BatchConfig,
        manifest: ManifestSpec,
        image: SourceImage,
        spec: CropSpec,
        namer: OutputNamer,
        listener: BatchListener,
    ) -> None:
        validate_bounds(image, spec.rect)
        sink = resolve_sink(spec, manifest, config.sink_fallback, create=not config.dry_run)
        if config.dry_run:
            return

        region = crop(image, spec.rect)
        destination = namer.allocate(sink, spec, config.respect_saved_as)
        try:
            atomic_write_image(destination, region)
        except Exception:
            namer.release(destination)
            raise
        self._notify(listener, "on_crop_done", spec.image_path, destination)
