"""Rich console rendering for batch runs."""

from __future__ import annotations

from pathlib import Path
import threading

from rich.console import Console
from rich.table import Table
from rich.text import Text

from cropbatch.pipeline.listener import BatchListener
from cropbatch.pipeline.progress import BatchProgress, BatchResult


def _progress_text(progress: BatchProgress) -> Text:
    text = Text()
    text.append("crops ", style="bold")
    text.append(f"{progress.crops_done}", style="green")
    text.append("/")
    text.append(f"{progress.crops_queued}")
    if progress.crops_failed:
        text.append(f"  failed {progress.crops_failed}", style="red")
    text.append(f"  images {progress.images_processed}", style="dim")
    return text


def result_table(result: BatchResult) -> Table:
    """Summarize a finished run as a two-column table."""

    table = Table(expand=False, show_header=True, pad_edge=False, title="Batch result")
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    rows = (
        ("manifests queued", result.manifests_queued),
        ("manifests processed", result.manifests_processed),
        ("manifests skipped", result.manifests_skipped),
        ("manifests failed", result.manifests_failed),
        ("images processed", result.images_processed),
        ("crops queued", result.crops_queued),
        ("crops done", result.crops_done),
        ("crops failed", result.crops_failed),
    )
    for label, value in rows:
        style = "red" if label.endswith("failed") and value else None
        table.add_row(label, str(value), style=style)
    table.add_row("elapsed", f"{result.elapsed_seconds:.1f}s")
    return table


class ConsoleListener(BatchListener):
    """Print human-readable progress lines to a rich Console."""

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self.console = console or Console(stderr=True)
        self.verbose = verbose
        self._lock = threading.Lock()

    def _print(self, *renderables: object) -> None:
        with self._lock:
            self.console.print(*renderables)

    def on_start(self, progress: BatchProgress) -> None:
        self._print(f"[bold]Start[/bold] manifests={progress.manifests_queued}")

    def on_manifest_start(self, manifest: Path, index: int, total: int) -> None:
        self._print(f"[cyan]Manifest {index}/{total}[/cyan] {manifest}")

    def on_crop_done(self, image_path: str, output_path: Path) -> None:
        if self.verbose:
            self._print(f"  [green]wrote[/green] {output_path}")

    def on_progress(self, progress: BatchProgress) -> None:
        self._print(_progress_text(progress))

    def on_error(self, where: str, message: str, exc: BaseException | None) -> None:
        self._print(Text(f"[{where}] {message}", style="red"))

    def on_complete(self, result: BatchResult) -> None:
        self._print(result_table(result))
