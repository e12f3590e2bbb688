from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from ivee_voice.assistant import VoiceAssistant
from ivee_voice.config import ConversationConfig
from ivee_voice.interfaces import (
    AudioOutput,
    KeywordDetector,
    LanguageModel,
    ScreenReader,
    SpeechListener,
    SpeechSynthesizer,
)
from ivee_voice.types import CapturedScreen


@pytest.fixture
def conversation_config():
    """Fast settings so timers and cues do not slow tests down."""
    return ConversationConfig(
        access_key="test-key",
        poll_interval_seconds=0.01,
        ready_cue_delay_seconds=0.0,
        call_timeout_seconds=2.0,
    )


@pytest.fixture
def keyword_detector():
    detector = AsyncMock(spec=KeywordDetector)
    detector.poll_last_keyword.return_value = None
    return detector


@pytest.fixture
def speech_listener():
    listener = AsyncMock(spec=SpeechListener)
    listener.listen_for_speech.return_value = "turn on the lights"
    listener.listen_for_consent.return_value = "allowed"
    return listener


@pytest.fixture
def captured_screen():
    return CapturedScreen(
        png_bytes=b"\x89PNG fake",
        width=1920,
        height=1080,
        captured_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        text="def main():\n    print('hello')",
    )


@pytest.fixture
def screen_reader(captured_screen):
    reader = AsyncMock(spec=ScreenReader)
    reader.capture_with_text.return_value = captured_screen
    return reader


@pytest.fixture
def language_model():
    model = AsyncMock(spec=LanguageModel)
    model.complete.return_value = "Sure, turning them on."
    return model


@pytest.fixture
def speech_synthesizer():
    synthesizer = AsyncMock(spec=SpeechSynthesizer)
    synthesizer.synthesize.return_value = b"RIFF fake wav"
    return synthesizer


@pytest.fixture
def audio_output():
    return AsyncMock(spec=AudioOutput)


@pytest_asyncio.fixture
async def make_assistant(
    conversation_config,
    keyword_detector,
    speech_listener,
    screen_reader,
    language_model,
    speech_synthesizer,
    audio_output,
):
    """Build assistants wired to mocks; every one built is closed afterwards."""
    created = []

    def factory(config=None, **kwargs):
        assistant = VoiceAssistant(
            keyword_detector=keyword_detector,
            speech_listener=speech_listener,
            screen_reader=screen_reader,
            language_model=language_model,
            speech_synthesizer=speech_synthesizer,
            audio_output=audio_output,
            config=config or conversation_config,
            **kwargs,
        )
        created.append(assistant)
        return assistant

    yield factory

    for assistant in created:
        await assistant.aclose()
        await assistant.wait_until_settled()


@pytest_asyncio.fixture
async def assistant(make_assistant):
    return make_assistant()

