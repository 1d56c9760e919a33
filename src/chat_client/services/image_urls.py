from __future__ import annotations

import logging
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)


def optimize_image_url(
    url: str | None,
    *,
    width: int = 600,
    height: int = 600,
    quality: str = "auto",
    fmt: str = "auto",
    crop: str = "fill",
) -> str | None:
    """Insert a Cloudinary transformation segment right after ``/upload/``.

    URLs from other hosts, or without an upload segment, come back unchanged.
    """
    if not url or "cloudinary.com" not in url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        logger.warning("Cannot parse image URL %r", url)
        return url

    segments = parts.path.split("/")
    if "upload" not in segments:
        return url
    index = segments.index("upload")
    segments.insert(index + 1, f"c_{crop},w_{width},h_{height},q_{quality},f_{fmt}")
    return urlunsplit(parts._replace(path="/".join(segments)))


def thumbnail_url(url: str | None) -> str | None:
    return optimize_image_url(url, width=100, height=100, quality="low", crop="fill")
