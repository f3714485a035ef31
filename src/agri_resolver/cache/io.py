from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from agri_resolver.cache.models import CacheEntry, SchemaVersion

logger = logging.getLogger(__name__)


def atomic_write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp_path.replace(path)


def encode_entry(entry: CacheEntry) -> dict:
    return {
        "value": entry.value,
        "written_at_ms": entry.written_at_ms,
        "ttl_ms": entry.ttl_ms,
    }


def decode_entry(key: str, record: dict) -> Optional[CacheEntry]:
    try:
        return CacheEntry(
            key=key,
            value=record["value"],
            written_at_ms=int(record["written_at_ms"]),
            ttl_ms=int(record["ttl_ms"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Skipping undecodable cache record. key=%s", key)
        return None


def encode_document(records: Dict[str, dict]) -> dict:
    return {"schema_version": SchemaVersion, "entries": records}


def read_document(path: Path) -> Dict[str, dict]:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        logger.exception("Failed to read cache file, starting fresh. path=%s", path)
        return {}

    if not isinstance(payload, dict):
        logger.warning("Cache file is not a JSON object, starting fresh. path=%s", path)
        return {}
    version = payload.get("schema_version")
    if version != SchemaVersion:
        logger.warning(
            "Cache schema version mismatch, starting fresh. path=%s expected=%s actual=%s",
            path,
            SchemaVersion,
            version,
        )
        return {}

    entries = payload.get("entries", {})
    if not isinstance(entries, dict):
        logger.warning("Cache file entries are not a mapping, starting fresh. path=%s", path)
        return {}
    return {key: record for key, record in entries.items() if isinstance(record, dict)}
