"""Normalizing store responses into records and names."""

from __future__ import annotations

import logging
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def records_from_response(raw: Any) -> list[dict[str, Any]]:
    """Turn a list/search response into record dicts.

    The store answers either a list of records or an object keyed by record
    id. Keyed records without an ``id`` get the key as their id. Entries
    that are not objects are skipped.
    """
    if not raw:
        return []
    if isinstance(raw, Mapping):
        records = []
        for key, value in raw.items():
            if isinstance(value, Mapping):
                record = dict(value)
                record.setdefault("id", str(key))
                records.append(record)
        return records
    if isinstance(raw, list):
        return [dict(item) for item in raw if isinstance(item, Mapping)]
    logger.warning("Unexpected list response of type %s", type(raw).__name__)
    return []


def names_from_response(raw: Any) -> list[str]:
    """Turn a database/namespace listing into names.

    Accepts ``["a", "b"]``, ``[{"name": "a"}, ...]`` or ``{"a": ..., "b": ...}``.
    """
    if not raw:
        return []
    if isinstance(raw, Mapping):
        return [str(key) for key in raw]
    if isinstance(raw, list):
        names = []
        for item in raw:
            if isinstance(item, str):
                names.append(item)
            elif isinstance(item, Mapping) and item.get("name"):
                names.append(str(item["name"]))
        return names
    logger.warning("Unexpected name listing of type %s", type(raw).__name__)
    return []


__all__ = [
    "names_from_response",
    "records_from_response",
]
