import base64
import logging
from typing import Optional

from adeguard.config import settings
from adeguard.errors import (
    AttachmentTooLargeError,
    InvalidInputError,
    UnsupportedMediaTypeError,
)
from adeguard.models import Attachment

logger = logging.getLogger(__name__)

UPLOAD_MIME_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
}

AUDIO_MIME_TYPES = {
    "audio/wav",
    "audio/webm",
    "audio/ogg",
    "audio/mpeg",
    "audio/mp4",
}

DEFAULT_RECORDING_MIME = "audio/wav"


def _base_mime(mime_type: Optional[str]) -> str:
    # "audio/webm;codecs=opus" -> "audio/webm"
    return (mime_type or "").split(";", 1)[0].strip().lower()


def _encode(
    data: bytes,
    mime_type: str,
    accepted: set,
    max_bytes: int,
    name: Optional[str],
) -> Attachment:
    if not data:
        raise InvalidInputError("attachment is empty")

    if len(data) > max_bytes:
        raise AttachmentTooLargeError(
            f"attachment is {len(data)} bytes, limit is {max_bytes}"
        )

    if mime_type not in accepted:
        raise UnsupportedMediaTypeError(f"unsupported attachment type: {mime_type or 'unknown'}")

    return Attachment(
        data=base64.b64encode(data).decode("ascii"),
        mime_type=mime_type,
        name=name,
    )


def encode_upload(
    data: bytes,
    mime_type: Optional[str],
    name: Optional[str] = None,
) -> Attachment:
    """Encode a user-supplied PDF or image for inline transport."""
    return _encode(
        data,
        _base_mime(mime_type),
        UPLOAD_MIME_TYPES,
        settings.MAX_UPLOAD_BYTES,
        name,
    )


def encode_recording(data: bytes, mime_type: Optional[str] = None) -> Attachment:
    """Encode a recorded microphone blob as an audio attachment."""
    attachment = _encode(
        data,
        _base_mime(mime_type) or DEFAULT_RECORDING_MIME,
        AUDIO_MIME_TYPES,
        settings.MAX_RECORDING_BYTES,
        None,
    )
    logger.info("Encoded recording: %d bytes as %s", len(data), attachment.mime_type)
    return attachment


def decode_attachment(attachment: Attachment) -> bytes:
    return base64.b64decode(attachment.data)
