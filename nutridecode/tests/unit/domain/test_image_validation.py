"""
Unit tests for image validation.
"""

import pytest

from nutridecode.domain.label.validation import (
    MAX_IMAGE_BYTES,
    SUPPORTED_MIME_TYPES,
    ensure_valid_image,
    image_rejection_reason,
    validate_image,
)
from nutridecode.domain.shared.errors import ValidationError


def _oversized_payload() -> str:
    # len * 3 / 4 must exceed the limit
    return "A" * (MAX_IMAGE_BYTES * 4 // 3 + 8)


class TestValidateImage:
    def test_small_jpeg_accepted(self, jpeg_data_uri: str) -> None:
        assert validate_image(jpeg_data_uri) is True
        assert image_rejection_reason(jpeg_data_uri) is None

    @pytest.mark.parametrize(
        "uri",
        [
            "",
            "hello",
            "http://example.com/label.jpg",
            "data:text/plain;base64,aGVsbG8=",
            "DATA:IMAGE/JPEG;base64,/9j/",
        ],
    )
    def test_rejects_non_image_data_uri(self, uri: str) -> None:
        assert validate_image(uri) is False

    def test_rejects_missing_payload(self) -> None:
        assert validate_image("data:image/png;base64,") is False

    @pytest.mark.parametrize("mime", SUPPORTED_MIME_TYPES)
    def test_rejects_oversized_supported_types(self, mime: str) -> None:
        uri = f"data:{mime};base64,{_oversized_payload()}"
        assert validate_image(uri) is False
        assert "too large" in (image_rejection_reason(uri) or "")

    @pytest.mark.parametrize("mime", ["image/gif", "image/webp", "image/bmp", "image/svg+xml"])
    def test_rejects_unsupported_types(self, mime: str) -> None:
        uri = f"data:{mime};base64,R0lGODlh"
        assert validate_image(uri) is False
        assert "Unsupported" in (image_rejection_reason(uri) or "")

    @pytest.mark.parametrize("mime", SUPPORTED_MIME_TYPES)
    def test_accepts_supported_types(self, mime: str) -> None:
        assert validate_image(f"data:{mime};base64,iVBORw0KGgo=") is True

    def test_ensure_valid_image_raises_with_reason(self) -> None:
        with pytest.raises(ValidationError, match="Unsupported image format: image/gif"):
            ensure_valid_image("data:image/gif;base64,R0lGODlh")

    def test_ensure_valid_image_passes(self, jpeg_data_uri: str) -> None:
        ensure_valid_image(jpeg_data_uri)
