"""
Validation of uploaded image payloads.
"""

import base64
import binascii
import re
from typing import NamedTuple, Optional

from agenda_gateway.errors import ClientInputError

SUPPORTED_MEDIA_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"}
)
DEFAULT_MEDIA_TYPE = "image/jpeg"

# data:image/png;base64,....
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,", re.IGNORECASE)


class ValidatedImage(NamedTuple):
    data: str
    media_type: str
    size_bytes: int


def validate_image(image_data: Optional[str], media_type: Optional[str]) -> ValidatedImage:
    """
    Check an image submission and normalize it for the upstream request.

    Accepts plain base64 or a browser data URL. When ``media_type`` is missing
    the data URL's MIME type is used, then DEFAULT_MEDIA_TYPE.

    Args:
        image_data: Base64 image bytes as sent by the client
        media_type: Declared MIME type

    Returns:
        ValidatedImage with bare base64 data, resolved MIME type and decoded size

    Raises:
        ClientInputError: If data is missing, not base64, or the type is unsupported
    """
    if not image_data or not image_data.strip():
        raise ClientInputError("No se recibió imageData")

    data = image_data.strip()
    match = _DATA_URL_RE.match(data)
    if match:
        data = data[match.end():]
        if not media_type and match.group("mime"):
            media_type = match.group("mime")
    # MIME-style base64 may be wrapped across lines
    data = "".join(data.split())

    media_type = (media_type or DEFAULT_MEDIA_TYPE).strip().lower()
    if media_type == "image/jpg":
        media_type = "image/jpeg"
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise ClientInputError(
            f"Tipo de imagen no soportado: {media_type}. "
            f"Usa uno de: {', '.join(sorted(SUPPORTED_MEDIA_TYPES))}"
        )

    try:
        decoded = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ClientInputError("imageData no es base64 válido") from e
    if not decoded:
        raise ClientInputError("imageData está vacío")

    return ValidatedImage(data=data, media_type=media_type, size_bytes=len(decoded))
