"""Load batch configs from Python references."""

from __future__ import annotations

from dataclasses import fields, replace
from functools import reduce
import importlib
import importlib.util
from pathlib import Path
from types import ModuleType
from typing import Any

from cropbatch.config.schema import BatchConfig
from cropbatch.workers.pool import normalize_thread_count


def _import_config_module(module_ref: str) -> ModuleType:
    """Import a dotted module name, or execute a ``.py`` file by path."""

    source = Path(module_ref).expanduser()
    if not source.exists():
        return importlib.import_module(module_ref)

    loader_spec = importlib.util.spec_from_file_location(
        f"_cropbatch_cfg_{source.stem}", source
    )
    if loader_spec is None or loader_spec.loader is None:
        raise ImportError(f"Cannot import config file: {source}")
    module = importlib.util.module_from_spec(loader_spec)
    loader_spec.loader.exec_module(module)
    return module


def load_object(reference: str) -> Any:
    """Resolve ``"module_or_path:attr[.attr...]"`` to the named object."""

    module_ref, sep, attr_path = reference.rpartition(":")
    if not sep or not module_ref or not attr_path:
        raise ValueError(
            f"Config reference {reference!r} must be in form 'module_or_path:attribute'."
        )
    return reduce(getattr, attr_path.split("."), _import_config_module(module_ref))


def load_batch_config(config_ref: str | None, **overrides: Any) -> BatchConfig:
    """Load a BatchConfig from reference, or build one from overrides.

    Overrides whose value is ``None`` are ignored, so CLI flags that were not
    given never clobber values from the referenced config.
    """

    given = {key: value for key, value in overrides.items() if value is not None}
    if "threads" in given:
        given["threads"] = normalize_thread_count(given["threads"])

    if config_ref is None:
        if "meta_root" not in given:
            raise ValueError("meta_root is required when no config reference is given.")
        return BatchConfig(**given)

    loaded = load_object(config_ref)
    if not isinstance(loaded, BatchConfig):
        type_name = type(loaded).__name__
        raise TypeError(f"Config reference must resolve to BatchConfig, got {type_name}.")
    return replace(loaded, **given)


def batch_config_from_dict(payload: dict[str, Any]) -> BatchConfig:
    """Reconstruct a BatchConfig from a plain dictionary."""

    known = {item.name for item in fields(BatchConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown BatchConfig keys: {', '.join(unknown)}")
    return BatchConfig(**payload)


def batch_config_to_dict(config: BatchConfig) -> dict[str, Any]:
    """Return a JSON-friendly dictionary for a BatchConfig."""

    payload: dict[str, Any] = {}
    for item in fields(BatchConfig):
        value = getattr(config, item.name)
        payload[item.name] = str(value) if isinstance(value, Path) else value
    return payload
