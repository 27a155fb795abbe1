"""`cropbatch run` command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import signal
from typing import Literal
from uuid import uuid4

from cropbatch.config.loader import batch_config_to_dict, load_batch_config
from cropbatch.errors import UsageError
from cropbatch.observability.console import ConsoleListener
from cropbatch.observability.logging import configure_logging
from cropbatch.pipeline.listener import BatchListener, JournalListener, ListenerGroup, LoggingListener
from cropbatch.pipeline.orchestrator import BatchProcessor
from cropbatch.pipeline.progress import BatchResult
from cropbatch.storage.atomic import atomic_write_json
from cropbatch.storage.journal import EventJournal


@dataclass(slots=True)
class RunCommand:
    """Crop every manifest found under a meta-root."""

    meta_root: Path | None = None
    source: Path | None = None
    sink: Path | None = None
    threads: int | None = None
    dry_run: bool = False
    respect_saved_as: bool = False
    force: bool = False
    config: str | None = None
    journal: Path | None = None
    report: Path | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    quiet: bool = False
    verbose: bool = False


def _install_signal_handlers(processor: BatchProcessor) -> dict[int, object]:
    def _handle_signal(_signum: int, _frame: object) -> None:
        processor.cancel()

    previous: dict[int, object] = {}
    for signum in (signal.SIGTERM, signal.SIGINT):
        previous[signum] = signal.getsignal(signum)
        signal.signal(signum, _handle_signal)
    return previous


def execute(command: RunCommand) -> BatchResult:
    configure_logging(command.log_level)
    try:
        cfg = load_batch_config(
            command.config,
            meta_root=command.meta_root,
            source_fallback=command.source,
            sink_fallback=command.sink,
            threads=command.threads,
            dry_run=command.dry_run or None,
            respect_saved_as=command.respect_saved_as or None,
            force=command.force or None,
        )
    except (ValueError, TypeError, ImportError, AttributeError) as exc:
        raise UsageError(f"Invalid run configuration: {exc}") from exc
    if not cfg.meta_root.is_dir():
        raise UsageError(f"Manifest root is not a directory: {cfg.meta_root}")

    run_id = uuid4().hex
    listeners: list[BatchListener] = [LoggingListener()]
    if not command.quiet:
        listeners.append(ConsoleListener(verbose=command.verbose))
    if command.journal is not None:
        listeners.append(JournalListener(EventJournal(command.journal, run_id=run_id)))

    processor = BatchProcessor()
    previous = _install_signal_handlers(processor)
    try:
        result = processor.run(cfg, ListenerGroup(listeners))
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)

    if command.report is not None:
        atomic_write_json(
            command.report,
            {
                "run_id": run_id,
                "cancelled": processor.cancelled,
                "config": batch_config_to_dict(cfg),
                "result": result.as_dict(),
            },
        )
    return result
