from __future__ import annotations

import asyncio
import logging

import cloudinary
import cloudinary.uploader

from chat_client.application.exceptions import UploadFailedError

logger = logging.getLogger(__name__)


class CloudinaryImageUploader:
    """Unsigned uploads through an upload preset; no API secret on the client."""

    def __init__(self, cloud_name: str, upload_preset: str, *, folder: str = "chat_app/") -> None:
        if not (cloud_name and upload_preset):
            raise ValueError("Cloudinary cloud name and upload preset are required")
        self._cloud_name = cloud_name
        self._upload_preset = upload_preset
        self._folder = folder
        cloudinary.config(cloud_name=cloud_name, secure=True)

    async def upload(self, data: bytes, *, filename: str, content_type: str) -> str:
        logger.debug("Uploading %s (%s, %d bytes)", filename, content_type, len(data))
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.unsigned_upload,
                data,
                self._upload_preset,
                folder=self._folder,
                cloud_name=self._cloud_name,
                resource_type="image",
            )
        except Exception as exc:
            raise UploadFailedError(f"Upload failed: {exc}") from exc

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise UploadFailedError("Upload failed: no URL in response")
        logger.info("Uploaded %s", url)
        return url
