# overlaysdk/store.py
"""JSON persistence helpers and the key/value store used for rulers and calibration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from loguru import logger

DEFAULT_DIR = Path.home() / ".overlaysdk"


def _resolve(path: str | Path, root: Path | None = None) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = (root or DEFAULT_DIR) / p
    return p


def save_json(path: str | Path, data: Any, root: Path | None = None) -> Path:
    p = _resolve(path, root)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return p


def load_json(path: str | Path, root: Path | None = None) -> Dict[str, Any] | None:
    p = _resolve(path, root)
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {p}: {e}")
        return None


class PersistenceStore(Protocol):
    """Pass-through key/value collaborator. The value format is the caller's business."""

    def save(self, key: str, value: Any) -> None: ...

    def load(self, key: str) -> Optional[Any]: ...


class JsonStore:
    """One JSON file per key under ``root``."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root).expanduser() if root is not None else DEFAULT_DIR

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def save(self, key: str, value: Any) -> None:
        p = save_json(self._path(key), value)
        logger.debug(f"Saved '{key}' -> {p}")

    def load(self, key: str) -> Optional[Any]:
        return load_json(self._path(key))


class MemoryStore:
    """In-process store; values are JSON round-tripped so callers can't share mutable state."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def load(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)
