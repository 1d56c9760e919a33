"""Voice clips travel inside the message record as base64 data URLs."""
from __future__ import annotations

import base64
import binascii

from chat_client.application.exceptions import MalformedRecordError, ValidationError

DEFAULT_MIME_TYPE = "audio/webm;codecs=opus"
VOICE_SUMMARY = "🎤 Voice message"


def format_duration(seconds: int | None) -> str:
    if not seconds:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def voice_caption(seconds: int | None) -> str:
    return f"{VOICE_SUMMARY} ({format_duration(seconds)})"


def encode_audio(audio: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    if not audio:
        raise ValidationError("Recording is empty")
    if not mime_type.startswith("audio/"):
        raise ValidationError(f"Not an audio type: {mime_type}")
    return f"data:{mime_type};base64,{base64.b64encode(audio).decode('ascii')}"


def decode_audio(data_url: str) -> tuple[bytes, str]:
    """Return (audio bytes, mime type); raise MalformedRecordError on a corrupt payload."""
    try:
        header, encoded = data_url.split(",", 1)
        if not header.startswith("data:") or ";base64" not in header:
            raise ValueError("not a base64 data URL")
        mime_type = header[len("data:"):].split(";", 1)[0]
        return base64.b64decode(encoded, validate=True), mime_type
    except (ValueError, binascii.Error) as exc:
        raise MalformedRecordError(f"Unable to decode voice message: {exc}") from exc
