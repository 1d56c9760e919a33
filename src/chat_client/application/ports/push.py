from __future__ import annotations

from typing import Protocol


class PushTokenProvider(Protocol):
    async def is_supported(self) -> bool: ...

    async def get_token(self, public_key: str) -> str | None: ...
