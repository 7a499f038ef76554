"""
Image encoding helpers: data URI decoding and PNG encoding via Pillow.
"""

import base64
import binascii
import hashlib
import io
import logging
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from models.shape_types import PngImage

logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when embedded image data cannot be decoded"""
    pass


def detect_image_mime_type(img_bytes: bytes) -> str:
    """Detect MIME type from image bytes."""
    if not img_bytes or len(img_bytes) < 8:
        return "image/unknown"

    if img_bytes[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    elif img_bytes[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    elif img_bytes[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    elif img_bytes[:4] == b'RIFF' and img_bytes[8:12] == b'WEBP':
        return "image/webp"
    elif img_bytes[:4] in (b'\x00\x00\x00\x0cjP', b'\xff\x4f\xff\x51'):
        return "image/jp2"
    return "image/unknown"


def decode_data_uri(href: str) -> Image.Image:
    """
    Decode a `data:` URI into an RGBA Pillow image.

    Args:
        href: data URI, base64 or percent-encoded

    Returns:
        Fully loaded RGBA image

    Raises:
        ImageDecodeError: If the URI is not a data URI or its payload is not
            a readable image
    """
    if not href or not href.startswith('data:'):
        raise ImageDecodeError(f"Not a data URI: {href[:32]!r}")

    header, sep, payload = href.partition(',')
    if not sep:
        raise ImageDecodeError("Malformed data URI (missing ',')")

    try:
        if header.endswith(';base64'):
            raw = base64.b64decode(payload, validate=False)
        else:
            raw = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid data URI payload: {e}") from e

    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(
            f"Unreadable {detect_image_mime_type(raw)} payload ({len(raw)} bytes): {e}"
        ) from e

    if image.mode != 'RGBA':
        try:
            image = image.convert('RGBA')
        except ValueError as e:
            raise ImageDecodeError(f"Unsupported image mode {image.mode}: {e}") from e
    return image


def encode_png(image: Image.Image) -> PngImage:
    """Encode a Pillow image as PNG, keeping its mode (RGB or RGBA)."""
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return PngImage(width_px=image.width, height_px=image.height, png_bytes=buffer.getvalue())


def to_data_uri(png_bytes: bytes) -> str:
    """Wrap PNG bytes as a base64 data URI."""
    mime_type = detect_image_mime_type(png_bytes)
    return f"data:{mime_type};base64,{base64.b64encode(png_bytes).decode('utf-8')}"


def content_hash(png_bytes: bytes) -> str:
    """
    Short content hash of an image: the first 16 hex digits of the sha256 of
    its base64 text. Identical images hash identically across runs.
    """
    encoded = base64.b64encode(png_bytes)
    return hashlib.sha256(encoded).hexdigest()[:16]
