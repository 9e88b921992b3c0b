"""Saved appreciation and exit presets per broker."""

import logging
from typing import Any, Dict, List

from crm.errors import NotFoundError, ValidationError
from crm.validation import text
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

APPRECIATION_FIELDS = (
    "construction_appreciation", "growth_appreciation", "mature_appreciation",
    "growth_period_years", "rent_growth_rate",
)

_TABLES = {"appreciation": "appreciation_presets", "exit": "exit_presets"}


def _table(kind: str) -> str:
    try:
        return _TABLES[kind]
    except KeyError:
        raise NotFoundError(f"Unknown preset kind: {kind}")


def _values(kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    issues = []
    name = text(data.get("name"))
    if not name:
        issues.append("Preset name is required")
    values: Dict[str, Any] = {"name": name}

    if kind == "appreciation":
        for key in APPRECIATION_FIELDS:
            raw = data.get(key)
            if raw is None:
                if key != "rent_growth_rate":
                    issues.append(f"{key} is required")
                values[key] = None
                continue
            try:
                values[key] = float(raw)
            except (TypeError, ValueError):
                issues.append(f"{key} must be a number")
    else:
        months = data.get("exit_months") or []
        try:
            if not isinstance(months, list):
                raise TypeError("exit_months")
            values["exit_months"] = sorted({int(m) for m in months if int(m) > 0})
        except (TypeError, ValueError):
            issues.append("exit_months must be a list of whole months")
        try:
            threshold = float(data.get("minimum_exit_threshold", 30))
            if not 0 <= threshold <= 100:
                issues.append("minimum_exit_threshold must be between 0 and 100")
            values["minimum_exit_threshold"] = threshold
        except (TypeError, ValueError):
            issues.append("minimum_exit_threshold must be a number")

    if issues:
        raise ValidationError(issues)
    return values


def list_presets(store: RecordStore, broker_id: str, kind: str) -> List[Dict[str, Any]]:
    return store.select(_table(kind), where={"user_id": broker_id}, order_by="name")


def create_preset(store: RecordStore, broker_id: str, kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    row = store.insert(_table(kind), {"user_id": broker_id, **_values(kind, data)})
    logger.info("Saved %s preset %r", kind, row["name"])
    return row


def _get(store: RecordStore, broker_id: str, kind: str, preset_id: str) -> Dict[str, Any]:
    row = store.get(_table(kind), preset_id)
    if row is None or row.get("user_id") != broker_id:
        raise NotFoundError(f"Preset not found: {preset_id}")
    return row


def update_preset(store: RecordStore, broker_id: str, kind: str, preset_id: str,
                  data: Dict[str, Any]) -> Dict[str, Any]:
    _get(store, broker_id, kind, preset_id)
    return store.update(_table(kind), preset_id, _values(kind, data))


def delete_preset(store: RecordStore, broker_id: str, kind: str, preset_id: str) -> None:
    _get(store, broker_id, kind, preset_id)
    store.delete(_table(kind), preset_id)
