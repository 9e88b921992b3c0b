"""JSON-file record store: one file per row, one directory per table."""

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from config import config

logger = logging.getLogger(__name__)

TABLES = (
    "quotes",
    "quote_versions",
    "quote_views",
    "clients",
    "properties",
    "presentations",
    "presentation_views",
    "profiles",
    "appreciation_presets",
    "saved_comparisons",
    "exit_presets",
)


class InvalidRecordId(ValueError):
    pass


def is_valid_id(record_id: Any) -> bool:
    """Ids become file names, so path separators and leading dots are refused."""
    return (isinstance(record_id, str) and bool(record_id)
            and "/" not in record_id and "\\" not in record_id and not record_id.startswith("."))


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RecordStore:
    """Rows are plain dicts persisted as ``<root>/<table>/<id>.json``.

    Each write replaces the whole file atomically. Selection loads every row
    of the table, which is fine at CRM scale.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or config.DATA_DIR)
        self._lock = threading.Lock()
        for table in TABLES:
            (self.root / table).mkdir(parents=True, exist_ok=True)

    def _path(self, table: str, record_id: str) -> Path:
        if table not in TABLES:
            raise KeyError(f"Unknown table: {table}")
        if not is_valid_id(record_id):
            raise InvalidRecordId(f"Invalid record id: {record_id!r}")
        return self.root / table / f"{record_id}.json"

    def _write(self, path: Path, row: Dict[str, Any]) -> None:
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(row, indent=2, default=str), encoding="utf-8")
        os.replace(tmp, path)

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        now = utc_now()
        row = dict(values)
        row["id"] = row.get("id") or str(uuid.uuid4())
        row.setdefault("created_at", now)
        row["updated_at"] = now
        with self._lock:
            self._write(self._path(table, row["id"]), row)
        logger.debug("Inserted %s/%s", table, row["id"])
        return row

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        try:
            path = self._path(table, record_id)
        except InvalidRecordId:
            return None
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.get(table, record_id)
            if row is None:
                return None
            row.update({k: v for k, v in changes.items() if k not in ("id", "created_at")})
            row["updated_at"] = utc_now()
            self._write(self._path(table, record_id), row)
        return row

    def delete(self, table: str, record_id: str) -> bool:
        try:
            path = self._path(table, record_id)
        except InvalidRecordId:
            return False
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
        logger.debug("Deleted %s/%s", table, record_id)
        return True

    def select(
        self,
        table: str,
        where: Optional[Dict[str, Any]] = None,
        predicate: Optional[Callable[[Dict[str, Any]], bool]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Rows matching every ``where`` equality and the optional predicate."""
        if table not in TABLES:
            raise KeyError(f"Unknown table: {table}")
        rows = []
        for p in (self.root / table).glob("*.json"):
            try:
                row = json.loads(p.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.exception("Failed reading record file: %s", p)
                continue
            if where and any(row.get(k) != v for k, v in where.items()):
                continue
            if predicate and not predicate(row):
                continue
            rows.append(row)
        if order_by:
            rows.sort(
                key=lambda r: (r.get(order_by) is None, r.get(order_by) if r.get(order_by) is not None else 0),
                reverse=descending,
            )
        if limit is not None:
            rows = rows[:limit]
        return rows

    def find_one(self, table: str, **where: Any) -> Optional[Dict[str, Any]]:
        rows = self.select(table, where=where)
        return rows[0] if rows else None
