from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_change(paths: list[str]) -> str:
    envelope = {"event": "store.changed", "data": {"paths": paths}}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_change(raw: str | bytes) -> list[str]:
    data = json.loads(raw)
    return list(data["data"]["paths"])


def encode_leaf(value: Any) -> str:
    return json.dumps(value, cls=_Encoder, ensure_ascii=False)


def decode_leaf(raw: str | bytes) -> Any:
    return json.loads(raw)
