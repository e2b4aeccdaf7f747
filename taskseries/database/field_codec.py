"""Field-name translation between application records and store records.

Application records use camelCase keys (the API/JSON shape of ``Task``);
the store uses snake_case column names. Only keys are rewritten; values,
including nested checklist items, pass through untouched.
"""

import re
from typing import Any, Dict, Iterable, List

_UPPER = re.compile(r"[A-Z]")
_UNDERSCORE_LOWER = re.compile(r"_([a-z])")


def to_store_key(key: str) -> str:
    """``startTime`` -> ``start_time``. Snake_case keys are returned unchanged."""
    return _UPPER.sub(lambda m: f"_{m.group(0).lower()}", key)


def to_app_key(key: str) -> str:
    """``start_time`` -> ``startTime``. CamelCase keys are returned unchanged."""
    return _UNDERSCORE_LOWER.sub(lambda m: m.group(1).upper(), key)


def encode(record: Dict[str, Any]) -> Dict[str, Any]:
    """Application record -> store record."""
    if not record:
        return record
    return {to_store_key(key): value for key, value in record.items()}


def decode(record: Dict[str, Any]) -> Dict[str, Any]:
    """Store record -> application record."""
    if not record:
        return record
    return {to_app_key(key): value for key, value in record.items()}


def encode_many(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [encode(record) for record in records]


def decode_many(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [decode(record) for record in records]
