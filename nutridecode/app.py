"""
Composition root.

Builds one dispatcher, one OpenAI client, one TTS client, one audio
player and the repositories and services from Settings. Each NutriDecode
instance is isolated: nothing is shared through module state.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import structlog

from nutridecode.application.assistant import NutritionAssistant
from nutridecode.application.enrichment import PreferenceEnrichmentService
from nutridecode.application.history import AnalysisHistoryService
from nutridecode.application.label_analysis import LabelAnalysisService
from nutridecode.application.preferences import PreferencesService
from nutridecode.application.waitlist import ProfileService, WaitlistService
from nutridecode.config import Settings
from nutridecode.infrastructure.ai.dispatcher import RateLimitedDispatcher
from nutridecode.infrastructure.ai.openai_client import OpenAIClient
from nutridecode.infrastructure.persistence.factory import Repositories, create_repositories
from nutridecode.infrastructure.speech.elevenlabs_client import ElevenLabsClient
from nutridecode.infrastructure.speech.player import AudioPlayer, AudioSink, FileAudioSink
from nutridecode.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


class NutriDecode:
    """
    Application instance.

    Example:
        >>> async with NutriDecode(Settings.from_env()) as app:
        ...     analysis = await app.label_analysis.analyze(image_uri)
        ...     stored = await app.history.save("user_1", analysis)
        ...     await app.speak(await app.assistant.summarize(analysis))
    """

    def __init__(
        self,
        settings: Settings,
        openai_client: Optional[OpenAIClient] = None,
        tts_client: Optional[ElevenLabsClient] = None,
        repositories: Optional[Repositories] = None,
        audio_sink: Optional[AudioSink] = None,
        audio_dir: Path = Path("audio"),
    ):
        """
        Args:
            settings: Application settings
            openai_client: Pre-built client (tests); built from settings if None
            tts_client: Pre-built TTS client (tests); built from settings if None
            repositories: Pre-built repositories (tests); built from settings if None
            audio_sink: Playback output; defaults to files under `audio_dir`
            audio_dir: Directory for the default file sink
        """
        self.settings = settings
        configure_logging(settings.log_level, settings.log_format)

        self.dispatcher = RateLimitedDispatcher(
            tokens_per_minute=settings.openai_tokens_per_minute,
            max_retries=settings.openai_max_retries,
            base_delay_s=settings.openai_retry_base_delay_s,
        )
        self.openai_client = openai_client or OpenAIClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            dispatcher=self.dispatcher,
        )
        # An injected client is rebound to this instance's dispatcher
        self.openai_client.dispatcher = self.dispatcher

        self.tts_client = tts_client or ElevenLabsClient(
            api_key=settings.elevenlabs_api_key,
            voice_id=settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
        )
        self.player = AudioPlayer(self.tts_client, audio_sink or FileAudioSink(audio_dir))

        self.repositories = repositories or create_repositories(settings)

        self.preferences = PreferencesService(self.repositories.preferences)
        self.label_analysis = LabelAnalysisService(self.openai_client)
        self.assistant = NutritionAssistant(self.openai_client)
        self.enrichment = PreferenceEnrichmentService(self.openai_client, self.preferences)
        self.history = AnalysisHistoryService(
            self.repositories.analyses,
            duplicate_window=timedelta(minutes=settings.duplicate_window_minutes),
            dedup_window=timedelta(seconds=settings.history_dedup_window_seconds),
        )
        self.waitlist = WaitlistService(self.repositories.waitlist)
        self.profiles = ProfileService(self.repositories.profiles)

    async def __aenter__(self) -> NutriDecode:
        await self.openai_client.__aenter__()
        await self.tts_client.__aenter__()
        await self.repositories.ensure_indexes()
        logger.info("nutridecode_started", backend=self.settings.repository_backend)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.player.stop()
        await self.tts_client.__aexit__(exc_type, exc_val, exc_tb)
        await self.openai_client.__aexit__(exc_type, exc_val, exc_tb)
        self.repositories.close()
        logger.info("nutridecode_stopped")

    async def speak(self, text: str) -> bool:
        """Synthesize and play `text`, replacing anything currently playing."""
        return await self.player.play(text)
