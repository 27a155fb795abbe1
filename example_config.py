"""Example cropbatch run config.

Use with ``cropbatch run --config example_config.py:CONFIG``.
"""

from pathlib import Path

from cropbatch.config.schema import BatchConfig


META_ROOT = Path("/data/annotations/crop_manifests")

CONFIG = BatchConfig(
    meta_root=META_ROOT,
    source_fallback=Path("/data/images"),
    sink_fallback=Path("/data/crops"),
    threads=4,
    dry_run=False,
    respect_saved_as=True,
    force=False,
    shutdown_grace_seconds=60.0,
)
