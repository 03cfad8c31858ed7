"""Project discovery, configuration and on-disk persistence for a tessera registry.

A project is any directory holding ``.tessera/``. Inside it live
``config.json`` (planning thresholds) and ``registry.json`` (the
capability store snapshot).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from tessera.store import CapabilityStore
from tessera.types.core import RegistryConfig

logger = logging.getLogger(__name__)

TESSERA_DIR_NAME = ".tessera"
REGISTRY_FILENAME = "registry.json"
CONFIG_FILENAME = "config.json"

DEFAULT_CONFIG = RegistryConfig(
    version=1,
    grace_period_days=30,
    final_notice_days=14,
    replacement_threshold=0.5,
    functionality_threshold=0.85,
)


def find_tessera_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for a .tessera/ directory.

    Returns the .tessera/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / TESSERA_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {TESSERA_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(tessera_dir: Path) -> RegistryConfig:
    """Read .tessera/config.json over the defaults. Returns defaults if missing or corrupt."""
    config = RegistryConfig(**DEFAULT_CONFIG)
    config_path = tessera_dir / CONFIG_FILENAME
    if not config_path.exists():
        return config
    try:
        raw = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return config
    if not isinstance(raw, dict):
        logger.warning("Ignoring %s: expected a JSON object, got %s", config_path, type(raw).__name__)
        return config
    for key, default in DEFAULT_CONFIG.items():
        if key not in raw:
            continue
        value = raw[key]
        if not _valid_config_value(default, value):
            logger.warning(
                "Ignoring %s in %s: %r is not a valid %s, using %r",
                key,
                config_path,
                value,
                type(default).__name__,
                default,
            )
            continue
        config[key] = value  # type: ignore[literal-required]
    return config


def _valid_config_value(default: Any, value: Any) -> bool:
    # Counts are non-negative ints, thresholds lie in [0, 1]. JSON booleans are neither.
    if isinstance(value, bool):
        return False
    if isinstance(default, int):
        return isinstance(value, int) and value >= 0
    return isinstance(value, int | float) and 0.0 <= value <= 1.0


def write_config(tessera_dir: Path, config: dict[str, Any] | RegistryConfig) -> None:
    """Write .tessera/config.json."""
    config_path = tessera_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def load_store(path: Path) -> CapabilityStore:
    """Load a store snapshot. A missing file yields an empty store.

    Raises ValueError naming *path* if the file is not valid JSON.
    """
    if not path.exists():
        return CapabilityStore()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Corrupt registry file {path}: {exc}"
        raise ValueError(msg) from exc
    return CapabilityStore.from_dict(data)


def save_store(store: CapabilityStore, path: Path) -> None:
    write_atomic(path, json.dumps(store.to_dict(), indent=2) + "\n")
    logger.debug("Saved %d capabilities to %s", len(store), path)


def init_project(project_root: Path) -> Path:
    """Create .tessera/ with a default config and an empty registry. Idempotent."""
    tessera_dir = project_root / TESSERA_DIR_NAME
    tessera_dir.mkdir(parents=True, exist_ok=True)
    if not (tessera_dir / CONFIG_FILENAME).exists():
        write_config(tessera_dir, DEFAULT_CONFIG)
    registry_path = tessera_dir / REGISTRY_FILENAME
    if not registry_path.exists():
        save_store(CapabilityStore(), registry_path)
    return tessera_dir
