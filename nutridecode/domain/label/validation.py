"""
Image validation for label analysis.

Pure checks run before anything is dispatched to the vision API.
"""

from __future__ import annotations

from typing import Optional

import structlog

from nutridecode.domain.shared.errors import ValidationError

logger = structlog.get_logger(__name__)

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/heif")
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def image_rejection_reason(image_data_uri: str) -> Optional[str]:
    """
    Explain why an image data URI would be rejected.

    Returns:
        None if acceptable, otherwise a human-readable reason
    """
    if not isinstance(image_data_uri, str) or not image_data_uri.startswith("data:image/"):
        return "Invalid image format: not a data URL"

    header, _, payload = image_data_uri.partition(",")
    if not payload:
        return "Invalid image format: no base64 data"

    size_bytes = len(payload) * 3 / 4
    if size_bytes > MAX_IMAGE_BYTES:
        size_mb = size_bytes / (1024 * 1024)
        return f"Image too large: {size_mb:.2f} MB (limit 10 MB)"

    mime_type = header.split(";")[0].split(":", 1)[1]
    if mime_type not in SUPPORTED_MIME_TYPES:
        return f"Unsupported image format: {mime_type}"

    return None


def validate_image(image_data_uri: str) -> bool:
    """
    Check that an image data URI is a supported, reasonably sized image.

    Example:
        >>> validate_image("data:image/jpeg;base64,/9j/4AAQSkZJRg==")
        True
        >>> validate_image("data:image/gif;base64,R0lGODlh")
        False
    """
    reason = image_rejection_reason(image_data_uri)
    if reason:
        logger.info("image_rejected", reason=reason)
        return False
    return True


def ensure_valid_image(image_data_uri: str) -> None:
    """Raise ValidationError carrying the rejection reason."""
    reason = image_rejection_reason(image_data_uri)
    if reason:
        raise ValidationError(reason)
