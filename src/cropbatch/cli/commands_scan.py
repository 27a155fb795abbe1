"""`cropbatch scan` command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.table import Table

from cropbatch.errors import ManifestError, UsageError
from cropbatch.manifest.store import discover_manifests, group_by_image, parse_manifest
from cropbatch.storage.markers import is_done


@dataclass(slots=True)
class ScanCommand:
    """List manifests in processing order with their done status."""

    meta_root: Path


def execute(command: ScanCommand, console: Console | None = None) -> list[dict[str, object]]:
    console = console or Console()
    if not Path(command.meta_root).is_dir():
        raise UsageError(f"Manifest root is not a directory: {command.meta_root}")
    rows: list[dict[str, object]] = []
    for path in discover_manifests(command.meta_root):
        try:
            groups = group_by_image(parse_manifest(path))
        except ManifestError as exc:
            rows.append({"manifest": path, "done": is_done(path), "images": None, "crops": None, "error": str(exc)})
            continue
        rows.append(
            {
                "manifest": path,
                "done": is_done(path),
                "images": len(groups),
                "crops": sum(len(crops) for crops in groups.values()),
                "error": None,
            }
        )

    table = Table(expand=True, show_header=True, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("Manifest")
    table.add_column("Done")
    table.add_column("Images", justify="right")
    table.add_column("Crops", justify="right")
    for index, row in enumerate(rows, start=1):
        if row["error"] is not None:
            table.add_row(str(index), str(row["manifest"]), "yes" if row["done"] else "no", "-", "-", style="red")
            continue
        table.add_row(
            str(index),
            str(row["manifest"]),
            "yes" if row["done"] else "no",
            str(row["images"]),
            str(row["crops"]),
        )
    console.print(table)
    return rows
