from __future__ import annotations

import logging

from chat_client.application.ports.uploads import ImageUploader
from chat_client.config import settings
from chat_client.infrastructure.uploads.cloudinary_uploader import CloudinaryImageUploader

logger = logging.getLogger(__name__)


def build_uploader() -> ImageUploader | None:
    """Cloudinary uploader from settings, or None when no cloud is configured."""
    if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_UPLOAD_PRESET):
        logger.info("Image uploads disabled: Cloudinary is not configured")
        return None
    return CloudinaryImageUploader(
        settings.CLOUDINARY_CLOUD_NAME,
        settings.CLOUDINARY_UPLOAD_PRESET,
        folder=settings.CLOUDINARY_FOLDER,
    )
