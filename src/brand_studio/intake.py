from __future__ import annotations

import base64
import logging
import os
from io import BytesIO

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from brand_studio import messages
from brand_studio.errors import InvalidAssetError
from brand_studio.providers.base import UploadedImage

logger = logging.getLogger(__name__)

_FORMAT_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


def _safe_filename(name: str) -> str:
    return os.path.basename(name).replace("..", "_") or "upload"


def read_upload(filename: str, content: bytes, content_type: str | None = None) -> UploadedImage:
    """
    Capture an uploaded file as an in-memory, base64-encoded image.

    The declared content type wins when it is an image type; otherwise the
    format Pillow detects is used.
    """
    if not content:
        raise InvalidAssetError(messages.EMPTY_UPLOAD)

    try:
        with Image.open(BytesIO(content)) as img:
            detected = img.format or ""
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.info("Rejected upload %r: %s", filename, exc)
        raise InvalidAssetError(messages.NOT_AN_IMAGE) from exc

    mime = (content_type or "").strip().lower()
    if not mime.startswith("image/"):
        mime = _FORMAT_MIME.get(detected.upper(), "image/png")

    return UploadedImage(
        filename=_safe_filename(filename),
        data=content,
        base64=base64.b64encode(content).decode("ascii"),
        mime_type=mime,
    )


async def intake_upload(upload: UploadFile) -> UploadedImage:
    content = await upload.read()
    return read_upload(upload.filename or "upload", content, upload.content_type)
