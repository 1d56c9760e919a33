from __future__ import annotations

from typing import Any, Mapping


def _created_at(payload: Mapping[str, Any]) -> float:
    value = payload.get("createdAt")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def decode_snapshot(snapshot: Mapping[str, Any] | None) -> list[dict[str, Any]]:
    """Turn a ``{key: record}`` snapshot into records ordered by createdAt, then key.

    A missing snapshot decodes to an empty list. Entries whose payload is not
    a record are dropped. Pure and deterministic.
    """
    if not snapshot or not isinstance(snapshot, Mapping):
        return []
    entries = [
        {**payload, "id": key}
        for key, payload in snapshot.items()
        if isinstance(payload, Mapping)
    ]
    entries.sort(key=lambda e: (_created_at(e), e["id"]))
    return entries
