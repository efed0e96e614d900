# =============================================================================
# Multimodal Vision Demo - Image Preview
# =============================================================================
# Decodes an uploaded image with Pillow and renders a small PNG thumbnail as a
# data URL, ready to be displayed next to the upload control.  Decoding also
# acts as the "is this file readable" check of the upload step.
# =============================================================================

import base64
import io
import logging
from typing import Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

PREVIEW_SIZE: Tuple[int, int] = (256, 256)


class PreviewError(Exception):
    """Raised when the uploaded bytes cannot be decoded as an image."""


def build_preview(image_bytes: bytes, max_size: Tuple[int, int] = PREVIEW_SIZE) -> str:
    """
    Render a thumbnail of an image as a ``data:image/png;base64,...`` URL.

    Args:
        image_bytes: Raw content of the uploaded file.
        max_size:    Bounding box (width, height) of the thumbnail.

    Returns:
        The data URL of the thumbnail.

    Raises:
        PreviewError: If Pillow cannot decode the image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            thumbnail = image.convert("RGBA") if image.mode not in ("RGB", "RGBA") else image.copy()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise PreviewError(f"Cannot decode image: {exc}") from exc

    thumbnail.thumbnail(max_size)
    buffer = io.BytesIO()
    thumbnail.save(buffer, format="PNG")

    logger.debug(
        "Built %dx%d preview (%d bytes)", thumbnail.width, thumbnail.height, buffer.tell(),
    )
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
