"""
Audio playback controller.

One AudioPlayer owns the single playback handle of an application
instance. Synthesis goes through a TextToSpeech implementation and the
resulting MPEG bytes are handed to an AudioSink.

State machine:

    IDLE --play--> LOADING --synthesized--> PLAYING --pause--> PAUSED
      ^                |                      |  ^               |
      |                +------- error --------+  +---- resume ---+
      +------------------ stop / finished -----------------------+
"""

from __future__ import annotations

import itertools
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


@runtime_checkable
class TextToSpeech(Protocol):
    async def text_to_speech(self, text: str) -> bytes:
        ...


@runtime_checkable
class AudioSink(Protocol):
    """Output device for synthesized audio."""

    def start(self, audio: bytes) -> None:
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def stop(self) -> None:
        ...


class FileAudioSink:
    """
    Sink that writes each clip to an .mp3 file in `directory`.

    Pause/resume only track state; a file has no transport to control.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self._counter = itertools.count(1)
        self.current_path: Optional[Path] = None
        self.paused = False

    def start(self, audio: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"speech_{next(self._counter):04d}.mp3"
        path.write_bytes(audio)
        self.current_path = path
        self.paused = False
        logger.debug("audio_written", path=str(path), bytes=len(audio))

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def stop(self) -> None:
        self.current_path = None
        self.paused = False


class AudioPlayer:
    """
    Single-handle playback state machine.

    Invalid transitions are no-ops that return False. A play() that is
    superseded by a newer play() (or a stop()) while still synthesizing
    discards its audio, so at most one clip is ever PLAYING.

    Example:
        >>> player = AudioPlayer(tts, FileAudioSink(Path("/tmp/audio")))
        >>> await player.play("Hello")
        True
        >>> player.state
        <PlaybackState.PLAYING: 'playing'>
    """

    def __init__(self, tts: TextToSpeech, sink: AudioSink) -> None:
        self._tts = tts
        self._sink = sink
        self._state = PlaybackState.IDLE
        self._generation = 0

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    def _release(self) -> None:
        if self._state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            self._sink.stop()

    async def play(self, text: str) -> bool:
        """
        Stop whatever is playing, synthesize `text` and start it.

        Returns:
            True if this request ended up PLAYING, False if it was
            superseded while loading

        Raises:
            ServiceError: If synthesis fails (state returns to IDLE)
        """
        self._release()
        self._generation += 1
        generation = self._generation
        self._state = PlaybackState.LOADING

        try:
            audio = await self._tts.text_to_speech(text)
        except Exception:
            if generation == self._generation:
                self._state = PlaybackState.IDLE
            raise

        if generation != self._generation:
            logger.debug("playback_superseded", generation=generation)
            return False

        self._sink.start(audio)
        self._state = PlaybackState.PLAYING
        return True

    def pause(self) -> bool:
        if self._state is not PlaybackState.PLAYING:
            return False
        self._sink.pause()
        self._state = PlaybackState.PAUSED
        return True

    def resume(self) -> bool:
        if self._state is not PlaybackState.PAUSED:
            return False
        self._sink.resume()
        self._state = PlaybackState.PLAYING
        return True

    def stop(self) -> bool:
        """Return to IDLE from any state; a pending load is discarded."""
        if self._state is PlaybackState.IDLE:
            return False
        self._release()
        # Invalidate any in-flight synthesis
        self._generation += 1
        self._state = PlaybackState.IDLE
        return True

    def finished(self) -> bool:
        """End-of-stream notification from the sink."""
        if self._state not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            return False
        self._state = PlaybackState.IDLE
        return True
