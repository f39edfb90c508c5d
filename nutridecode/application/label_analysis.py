"""
Label analysis service.

Extracts a structured AnalysisResult from a photo of a food label using
the OpenAI vision model.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutridecode.domain.label.models import AnalysisMetadata, AnalysisResult
from nutridecode.domain.label.prompts import build_label_messages
from nutridecode.domain.label.validation import ensure_valid_image
from nutridecode.domain.shared.errors import ExtractionError, ParseError
from nutridecode.infrastructure.ai.openai_client import OpenAIClient

logger = structlog.get_logger(__name__)

QUERY_TYPE = "food-label-analysis"
TEMPERATURE = 0.1
MAX_TOKENS = 4096


class LabelAnalysisService:
    """
    Service for label extraction.

    No side effects beyond the network call: nothing is persisted here.

    Example:
        >>> service = LabelAnalysisService(openai_client)
        >>> result = await service.analyze("data:image/jpeg;base64,/9j/...")
        >>> result.product_name
        'Hummus Chips'
    """

    def __init__(self, openai_client: OpenAIClient):
        self.openai_client = openai_client

    async def analyze(self, image_data_uri: str) -> AnalysisResult:
        """
        Analyze a food label image.

        Args:
            image_data_uri: data:image/(jpeg|png|heif);base64,... URI

        Returns:
            AnalysisResult with metadata attached

        Raises:
            ValidationError: Image rejected before any network call
            ExtractionError: Empty, non-JSON or structurally invalid reply
            ServiceError: Classified remote failure
        """
        ensure_valid_image(image_data_uri)
        start_time = time.perf_counter()

        try:
            payload = await self.openai_client.complete_json(
                messages=build_label_messages(image_data_uri),
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except ExtractionError:
            raise
        except ParseError as e:
            logger.warning("label_response_unparseable", error=str(e))
            raise ExtractionError(
                f"Failed to parse analysis results: {e}", content=e.content
            ) from e

        try:
            extracted = AnalysisResult.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning("label_response_invalid", errors=e.error_count())
            raise ExtractionError(f"Invalid analysis structure: {e}") from e

        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        metadata = AnalysisMetadata(
            timestamp=datetime.now(timezone.utc),
            model=self.openai_client.model,
            temperature=TEMPERATURE,
            query_type=QUERY_TYPE,
            processing_time_ms=processing_time_ms,
        )
        result = extracted.model_copy(update={"metadata": metadata})

        logger.info(
            "label_analyzed",
            product_name=result.product_name,
            ingredients=len(result.ingredients.items),
            processing_time_ms=processing_time_ms,
        )
        return result
