"""Append-only JSONL journal of run events."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
import threading
from typing import Any, Iterator


class EventJournal:
    """Thread-safe appender for one journal file."""

    def __init__(self, path: Path, run_id: str | None = None) -> None:
        self.path = Path(path)
        self.run_id = run_id
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, payload: dict[str, Any]) -> None:
        envelope: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        if self.run_id is not None and "run_id" not in envelope:
            envelope["run_id"] = self.run_id
        line = json.dumps(envelope, sort_keys=True, default=str) + "\n"
        with self._lock:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)


def iter_events(path: Path) -> Iterator[dict[str, Any]]:
    """Iterate parsed events from a journal file."""

    with Path(path).open("r", encoding="utf-8") as handle:
        for line in handle:
            text = line.strip()
            if not text:
                continue
            payload = json.loads(text)
            if not isinstance(payload, dict):
                raise TypeError(f"Event line is not a JSON object: {path}")
            yield payload
