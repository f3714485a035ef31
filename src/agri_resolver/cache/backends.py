from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

from agri_resolver.cache.io import atomic_write_json, encode_document, read_document

logger = logging.getLogger(__name__)


class PersistentBackend(Protocol):
    """Durable key/value storage for serialized cache records."""

    def read(self, key: str) -> Optional[dict]:
        ...

    def write(self, key: str, record: dict) -> None:
        ...

    def read_all(self) -> Dict[str, dict]:
        ...


class InMemoryBackend:
    def __init__(self, records: Optional[Dict[str, dict]] = None) -> None:
        self._records: Dict[str, dict] = dict(records or {})

    def read(self, key: str) -> Optional[dict]:
        record = self._records.get(key)
        return dict(record) if record is not None else None

    def write(self, key: str, record: dict) -> None:
        self._records[key] = dict(record)

    def read_all(self) -> Dict[str, dict]:
        return {key: dict(record) for key, record in self._records.items()}


class JsonFileBackend:
    """
    Keeps every record in one JSON document on disk.

    Each write rewrites the whole document through a temp file and an atomic
    replace, so a crash mid-write leaves the previous document intact. Writes
    are synchronous; the document holds one small record per price pair,
    token and narrative key, a few hundred at most.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._records: Optional[Dict[str, dict]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _loaded(self) -> Dict[str, dict]:
        if self._records is None:
            self._records = read_document(self._path)
            logger.debug("Cache file loaded. path=%s entries=%d", self._path, len(self._records))
        return self._records

    def read(self, key: str) -> Optional[dict]:
        return self._loaded().get(key)

    def write(self, key: str, record: dict) -> None:
        records = dict(self._loaded())
        records[key] = record
        # Only commit to memory once the document has been serialized and written.
        atomic_write_json(self._path, encode_document(records))
        self._records = records

    def read_all(self) -> Dict[str, dict]:
        return dict(self._loaded())
