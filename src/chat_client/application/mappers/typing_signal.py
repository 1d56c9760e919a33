from __future__ import annotations

from typing import Any, Mapping

from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import MalformedRecordError
from chat_client.domain.entities.typing_signal import TypingSignal


def record_to_entity(user_id: str, record: Any) -> TypingSignal:
    if not isinstance(record, Mapping):
        raise MalformedRecordError(f"typing signal for {user_id!r} is not a record")
    timestamp = record.get("timestamp", 0)
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise MalformedRecordError(f"typing signal for {user_id!r} has a bad timestamp")
    return TypingSignal(
        user_id=str(record.get("userId") or user_id),
        user_name=str(record.get("userName") or ""),
        timestamp=int(timestamp),
    )


def new_record(user: CurrentUser, now_ms: int) -> dict[str, Any]:
    return {"userId": user.uid, "userName": user.name, "timestamp": now_ms}
