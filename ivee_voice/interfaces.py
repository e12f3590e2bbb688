"""Protocol interfaces for assistant collaborators."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ivee_voice.types import AudioCue, CapturedScreen, ChatMessage


class KeywordDetector(Protocol):
    """Background wake-word engine queried by polling."""

    async def start(self, access_key: str) -> None:
        """Begin background keyword listening."""

    async def stop(self) -> None:
        """End background keyword listening."""

    async def poll_last_keyword(self) -> str | None:
        """Return and consume the most recent keyword, if any."""


class SpeechListener(Protocol):
    """Captures a spoken utterance or a spoken yes/no decision."""

    async def listen_for_speech(self, access_key: str) -> str:
        """Return the transcript of the next utterance."""

    async def listen_for_consent(self, access_key: str) -> str:
        """Return ``"allowed"`` when permission was given, anything else otherwise."""


class ScreenReader(Protocol):
    """Captures the desktop and extracts the text visible on it."""

    async def capture_with_text(self) -> CapturedScreen:
        """Capture the screen and return it with `text` filled in."""


class LanguageModel(Protocol):
    """Generates text from role-tagged messages."""

    async def complete(
        self,
        *,
        messages: Sequence[ChatMessage],
        model: str,
        max_tokens: int,
    ) -> str:
        """Return the generated reply text."""


class SpeechSynthesizer(Protocol):
    """Converts text into WAV audio bytes."""

    async def synthesize(self, text: str) -> bytes:
        """Return synthesized WAV bytes for the provided text."""


class AudioOutput(Protocol):
    """Plays synthesized speech and named cues to completion."""

    async def play(self, wav_bytes: bytes) -> None:
        """Play WAV audio and return once playback ends."""

    async def play_cue(self, cue: AudioCue) -> None:
        """Play a named cue and return once playback ends."""
