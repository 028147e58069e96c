"""
Device-local draft storage backed by a single JSON file.

Every write rewrites the whole file through a temporary sibling and an atomic
rename, so a crash mid-write leaves the previous contents intact.
"""
import json
import os
from pathlib import Path

import structlog

from src.application.interfaces.draft_store import DraftStore
from src.config import settings

logger = structlog.get_logger(__name__)


class JsonFileDraftStore(DraftStore):
    def __init__(self, path: str | Path = settings.draft_storage_path) -> None:
        self._path = Path(path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("draft_store_unreadable", path=str(self._path))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(items, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self._path)
