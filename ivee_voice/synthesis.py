"""Text-to-speech playback shared by both pipelines."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ivee_voice.errors import SynthesisError
from ivee_voice.interfaces import AudioOutput, SpeechSynthesizer

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ResponseSynthesizer:
    """Speaks text aloud through a synthesizer and an audio output."""

    speech_synthesizer: SpeechSynthesizer
    audio_output: AudioOutput
    logger: logging.Logger = LOGGER

    async def speak(self, text: str) -> None:
        """Synthesize `text` and play it to completion."""
        cleaned_text: str = text.strip()
        if not cleaned_text:
            raise SynthesisError("Cannot speak an empty response.")

        self.logger.debug("Text to speech: %s", cleaned_text)
        try:
            wav_bytes: bytes = await self.speech_synthesizer.synthesize(cleaned_text)
            if not wav_bytes:
                raise SynthesisError("Speech synthesis returned no audio.")
            await self.audio_output.play(wav_bytes)
        except SynthesisError as error:
            self.logger.error("Error in text-to-speech: %s", error)
            raise
        except Exception as error:
            self.logger.error("Error in text-to-speech: %s", error)
            raise SynthesisError(f"Failed to speak response: {error}") from error
