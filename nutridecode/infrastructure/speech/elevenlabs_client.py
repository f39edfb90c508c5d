"""
ElevenLabs text-to-speech client.

POSTs text to the ElevenLabs v1 API and returns MPEG audio bytes.
Transient failures (timeouts, network errors, 429) are retried with an
incrementing backoff of 1 s, 2 s, 3 s.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from nutridecode.domain.shared.errors import (
    ConfigurationError,
    ServiceError,
    ServiceErrorKind,
    ValidationError,
)

logger = structlog.get_logger(__name__)

SERVICE_NAME = "elevenlabs"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_MODEL_ID = "eleven_multilingual_v2"

DEFAULT_VOICE_SETTINGS: Dict[str, Any] = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}

_TRANSIENT_KINDS = (
    ServiceErrorKind.TIMEOUT,
    ServiceErrorKind.NETWORK,
    ServiceErrorKind.RATE_LIMIT,
)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ServiceError) and exc.kind in _TRANSIENT_KINDS


def classify_http_status(status_code: int) -> ServiceErrorKind:
    if status_code in (401, 403):
        return ServiceErrorKind.AUTH
    if status_code == 429:
        return ServiceErrorKind.RATE_LIMIT
    if status_code in (408, 504):
        return ServiceErrorKind.TIMEOUT
    if status_code >= 500:
        return ServiceErrorKind.NETWORK
    return ServiceErrorKind.UNKNOWN


class ElevenLabsClient:
    """
    Async ElevenLabs TTS client.

    Example:
        >>> async with ElevenLabsClient(api_key="xi-...") as tts:
        ...     audio = await tts.text_to_speech("Hummus chips, score 66.")
    """

    BASE_URL = "https://api.elevenlabs.io/v1"
    TIMEOUT_S = 30.0
    MAX_RETRIES = 3

    def __init__(
        self,
        api_key: Optional[str],
        voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_MODEL_ID,
        max_retries: int = MAX_RETRIES,
        session: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize TTS client.

        Args:
            api_key: ElevenLabs API key
            voice_id: Voice to synthesize with
            model_id: Synthesis model
            max_retries: Retries after a transient failure
            session: Optional pre-configured httpx client (for testing)
            sleep: Async sleep used between retries (injectable for tests)

        Raises:
            ConfigurationError: If api_key is missing
        """
        if not api_key:
            raise ConfigurationError("ELEVENLABS_API_KEY is required for text-to-speech")
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.max_retries = max_retries
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

    async def __aenter__(self) -> ElevenLabsClient:
        """Async context manager entry."""
        if self._session is None:
            self._session = httpx.AsyncClient(timeout=httpx.Timeout(self.TIMEOUT_S))
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._session and self._owns_session:
            await self._session.aclose()
            self._session = None

    @property
    def url(self) -> str:
        return f"{self.BASE_URL}/text-to-speech/{self.voice_id}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

    def _payload(self, text: str) -> Dict[str, Any]:
        return {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": dict(DEFAULT_VOICE_SETTINGS),
        }

    async def _post_once(self, text: str) -> bytes:
        assert self._session is not None
        try:
            response = await self._session.post(
                self.url, headers=self._headers(), json=self._payload(text)
            )
        except httpx.TimeoutException as e:
            raise ServiceError(
                f"Text-to-speech timed out: {e}",
                kind=ServiceErrorKind.TIMEOUT,
                service=SERVICE_NAME,
            ) from e
        except httpx.TransportError as e:
            raise ServiceError(
                f"Text-to-speech network error: {e}",
                kind=ServiceErrorKind.NETWORK,
                service=SERVICE_NAME,
            ) from e

        if response.status_code != 200:
            raise ServiceError(
                f"ElevenLabs API error {response.status_code}: {response.text[:200]}",
                kind=classify_http_status(response.status_code),
                service=SERVICE_NAME,
            )
        if not response.content:
            raise ServiceError("Received empty audio data", service=SERVICE_NAME)
        return response.content

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "tts_retry",
            attempt=state.attempt_number,
            max_retries=self.max_retries,
            error=str(exc),
        )

    async def text_to_speech(self, text: str) -> bytes:
        """
        Synthesize `text` to MPEG audio.

        Raises:
            ValidationError: If text is empty
            ServiceError: Classified failure, after retries for transient kinds
        """
        if not self._session:
            raise RuntimeError("Client not initialized. Use async context manager.")
        if not text.strip():
            raise ValidationError("Cannot synthesize empty text")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=1, increment=1),
            retry=retry_if_exception(_is_transient),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                audio = await self._post_once(text)
                logger.info("tts_generated", voice_id=self.voice_id, bytes=len(audio))
                return audio
        raise AssertionError("unreachable")  # pragma: no cover
