"""
Named value store used by the hosting application.

Values are JSON-compatible blobs keyed by string identifiers. The scoring
and duplicate cores never touch the store; the API layer loads inputs from
it and saves results back.
"""

import copy
import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class NamedValueStore(ABC):
    """get(key, default) / set(key, value) persistence interface"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...


class InMemoryStore(NamedValueStore):
    """Dict-backed store; values are copied in and out"""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._values:
            return default
        return copy.deepcopy(self._values[key])

    def set(self, key: str, value: Any) -> None:
        self._values[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._values)


class JsonFileStore(NamedValueStore):
    """One ``<key>.json`` file per key under a directory"""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug("Saved %s to %s", key, path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self) -> List[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def _path(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.directory / f"{key}.json"


def create_store(path: Optional[str] = None) -> NamedValueStore:
    """JSON file store when a directory is configured, otherwise in-memory"""
    if path:
        logger.info("Using JSON file store at %s", path)
        return JsonFileStore(path)
    return InMemoryStore()
