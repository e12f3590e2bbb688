from unittest.mock import AsyncMock

import pytest

from ivee_voice.errors import SynthesisError
from ivee_voice.synthesis import ResponseSynthesizer


@pytest.fixture
def responder(speech_synthesizer, audio_output):
    return ResponseSynthesizer(speech_synthesizer=speech_synthesizer, audio_output=audio_output)


class TestResponseSynthesizer:
    @pytest.mark.asyncio
    async def test_speaks_trimmed_text(self, responder, speech_synthesizer, audio_output):
        await responder.speak("  Hello there.  ")

        speech_synthesizer.synthesize.assert_awaited_once_with("Hello there.")
        audio_output.play.assert_awaited_once_with(b"RIFF fake wav")

    @pytest.mark.asyncio
    async def test_rejects_blank_text(self, responder, speech_synthesizer):
        with pytest.raises(SynthesisError):
            await responder.speak("   ")
        speech_synthesizer.synthesize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_audio_is_an_error(self, responder, speech_synthesizer, audio_output):
        speech_synthesizer.synthesize.return_value = b""

        with pytest.raises(SynthesisError, match="no audio"):
            await responder.speak("Hello")
        audio_output.play.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_playback_failure_is_reraised(self, speech_synthesizer):
        audio_output = AsyncMock()
        audio_output.play.side_effect = OSError("device busy")
        responder = ResponseSynthesizer(speech_synthesizer=speech_synthesizer, audio_output=audio_output)

        with pytest.raises(SynthesisError, match="device busy") as excinfo:
            await responder.speak("Hello")
        assert isinstance(excinfo.value.__cause__, OSError)
