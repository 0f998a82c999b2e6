from __future__ import annotations

import base64
import re
import time
from io import BytesIO

from PIL import Image

from brand_studio.providers.base import GeneratedImage

_EXT_FOR_MIME = {"image/png": "png", "image/jpeg": "jpeg", "image/webp": "webp"}


def decode_payload(image_base64: str) -> bytes:
    return base64.b64decode(image_base64)


def style_slug(style: str) -> str:
    # Keep letters (including accented ones) and digits; collapse the rest.
    slug = re.sub(r"[^\w]+", "-", style.strip(), flags=re.UNICODE).strip("-")
    return slug or "style"


def download_filename(style: str, ext: str, now: float | None = None) -> str:
    stamp = int((now if now is not None else time.time()) * 1000)
    return f"brand-image-{style_slug(style)}-{stamp}.{ext}"


def export_image(generated: GeneratedImage, fmt: str | None = None) -> tuple[bytes, str, str]:
    """
    Return (bytes, media_type, extension) for a generated image.

    Without `fmt` the payload is passed through untouched; with "png" or "jpeg"
    it is re-encoded with Pillow.
    """
    raw = decode_payload(generated.image_base64)
    if not fmt:
        return raw, generated.mime_type, _EXT_FOR_MIME.get(generated.mime_type, "png")

    fmt = fmt.lower()
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in ("png", "jpeg"):
        raise ValueError(f"unsupported export format: {fmt}")

    img = Image.open(BytesIO(raw))
    if fmt == "jpeg":
        img = img.convert("RGB")
    buf = BytesIO()
    img.save(buf, format=fmt.upper())
    return buf.getvalue(), f"image/{fmt}", fmt
