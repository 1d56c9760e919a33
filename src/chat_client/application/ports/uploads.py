from __future__ import annotations

from typing import Protocol


class ImageUploader(Protocol):
    async def upload(self, data: bytes, *, filename: str, content_type: str) -> str:
        """Upload an image and return its public URL."""
        ...
