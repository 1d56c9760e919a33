from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TypingSignal:
    user_id: str
    user_name: str
    timestamp: int

    @property
    def first_name(self) -> str:
        return self.user_name.split(" ")[0] if self.user_name else self.user_id
