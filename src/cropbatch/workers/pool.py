"""Worker pool sizing helpers."""

from __future__ import annotations

import os

MAX_DEFAULT_THREADS = 8


def default_thread_count() -> int:
    """Return min(cores - 1, 8), never less than one."""

    cpu = os.cpu_count() or 1
    return max(1, min(cpu - 1, MAX_DEFAULT_THREADS))


def normalize_thread_count(requested: int | None) -> int:
    """Return a safe worker count for the crop thread pool."""

    if requested is None:
        return default_thread_count()
    return max(1, int(requested))
