"""Microphone keyword, speech, and consent engines backed by OpenAI transcription."""

from __future__ import annotations

import asyncio
import io
import logging
import re
import threading
import wave
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ivee_voice.config import VoiceEngineConfig
from ivee_voice.errors import ConsentError, DetectionError, SpeechCaptureError
from ivee_voice.openai_client import build_openai_client
from ivee_voice.types import CONSENT_ALLOWED, CONSENT_DENIED

LOGGER = logging.getLogger(__name__)

NEGATION_PATTERN = re.compile(r"\b(?:no|nope|not|don't|do not|never)\b", flags=re.IGNORECASE)


def compile_phrase_patterns(phrases: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile case-insensitive whole-word patterns for spoken phrases."""
    return [
        re.compile(rf"\b{re.escape(phrase.strip())}\b", flags=re.IGNORECASE)
        for phrase in phrases
        if phrase.strip()
    ]


def match_keyword(transcript: str, patterns: Sequence[re.Pattern[str]]) -> int | None:
    """Return the index of the phrase heard first in `transcript`, if any."""
    best_index: int | None = None
    best_start: int | None = None
    for index, pattern in enumerate(patterns):
        match = pattern.search(transcript)
        if match is None:
            continue
        if best_start is None or match.start() < best_start:
            best_index, best_start = index, match.start()
    return best_index


def keyword_label(index: int) -> str:
    """Render a detected phrase index the way the poller receives it."""
    return f"Keyword {index} detected"


def interpret_consent(transcript: str, allow_patterns: Sequence[re.Pattern[str]]) -> str:
    """Turn a spoken answer into ``"allowed"`` or ``"denied"``."""
    if not transcript or NEGATION_PATTERN.search(transcript):
        return CONSENT_DENIED
    if any(pattern.search(transcript) for pattern in allow_patterns):
        return CONSENT_ALLOWED
    return CONSENT_DENIED


@dataclass(slots=True)
class MicrophoneTranscriber:
    """Records mono PCM16 clips and transcribes them through OpenAI."""

    voice_config: VoiceEngineConfig
    timeout_seconds: float = 45.0
    logger: logging.Logger = LOGGER
    _sounddevice: Any = field(init=False, repr=False)
    _clients: dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _clients_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize microphone dependencies."""
        try:
            import sounddevice
        except ImportError as error:
            raise RuntimeError("sounddevice package is required for voice input.") from error

        self._sounddevice = sounddevice

    def record_clip(self, duration_seconds: float) -> bytes:
        """Capture raw mono PCM16 audio from the default microphone."""
        chunks: list[bytes] = []
        duration_ms: int = max(1, int(duration_seconds * 1000))

        def callback(indata: Any, frames: int, time_info: Any, status: Any) -> None:
            _ = frames, time_info
            if status:
                self.logger.debug("Microphone status: %s", status)
            chunks.append(bytes(indata))

        with self._sounddevice.RawInputStream(
            samplerate=self.voice_config.sample_rate,
            channels=1,
            dtype="int16",
            callback=callback,
        ):
            self._sounddevice.sleep(duration_ms)

        return b"".join(chunks)

    def transcribe(self, access_key: str, pcm_audio: bytes, *, clip_name: str) -> str:
        """Transcribe PCM audio as WAV through OpenAI and return plain text."""
        if not pcm_audio:
            return ""

        wav_buffer = io.BytesIO()
        with wave.open(wav_buffer, "wb") as wav_file:
            wav_file.setnchannels(1)
            wav_file.setsampwidth(2)
            wav_file.setframerate(self.voice_config.sample_rate)
            wav_file.writeframes(pcm_audio)
        wav_buffer.seek(0)
        wav_buffer.name = f"{clip_name}.wav"  # type: ignore[attr-defined]

        result: Any = self._client_for(access_key).audio.transcriptions.create(
            model=self.voice_config.transcription_model,
            file=wav_buffer,
        )
        text: str | None = getattr(result, "text", None)
        return text.strip() if text else ""

    def _client_for(self, access_key: str) -> Any:
        with self._clients_lock:
            client: Any | None = self._clients.get(access_key)
            if client is None:
                client = build_openai_client(access_key, self.timeout_seconds)
                self._clients[access_key] = client
            return client


@dataclass(slots=True)
class OpenAIKeywordDetector:
    """Listens in the background and remembers the last trained phrase heard.

    Phrase ``i`` of `VoiceEngineConfig.keyword_phrases` is reported as
    ``"Keyword i detected"``.
    """

    transcriber: MicrophoneTranscriber
    retry_delay_seconds: float = 1.0
    logger: logging.Logger = LOGGER
    _patterns: list[re.Pattern[str]] = field(init=False, repr=False)
    _thread: threading.Thread | None = field(default=None, init=False, repr=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _last_keyword: str | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._patterns = compile_phrase_patterns(self.transcriber.voice_config.keyword_phrases)

    @property
    def listening(self) -> bool:
        """Return True while the background thread is listening."""
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    async def start(self, access_key: str) -> None:
        """Start the background listener; a running listener is left alone."""
        await asyncio.to_thread(self._start, access_key)

    async def stop(self) -> None:
        """Ask the background listener to finish after its current clip."""
        self._stop_event.set()

    async def poll_last_keyword(self) -> str | None:
        """Return the last keyword heard and forget it."""
        with self._lock:
            keyword: str | None = self._last_keyword
            self._last_keyword = None
        return keyword

    def _start(self, access_key: str) -> None:
        if self.listening:
            return
        if not access_key:
            raise DetectionError("An access key is required to start keyword detection.")
        if not self._patterns:
            raise DetectionError("No keyword phrases are configured.")
        if self._thread is not None:
            self._thread.join()

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._listen_loop,
            args=(access_key,),
            name="keyword-detector",
            daemon=True,
        )
        self._thread.start()
        self.logger.info("Keyword detection started.")

    def _listen_loop(self, access_key: str) -> None:
        seconds: float = self.transcriber.voice_config.keyword_listen_seconds
        while not self._stop_event.is_set():
            try:
                pcm_audio: bytes = self.transcriber.record_clip(seconds)
                transcript: str = self.transcriber.transcribe(
                    access_key, pcm_audio, clip_name="keyword"
                )
            except Exception as error:
                self.logger.warning("Keyword detection listen failed: %s", error)
                self._stop_event.wait(self.retry_delay_seconds)
                continue

            index: int | None = match_keyword(transcript, self._patterns)
            if index is None:
                continue
            self.logger.debug("Keyword transcript: %s", transcript)
            with self._lock:
                self._last_keyword = keyword_label(index)
        self.logger.info("Keyword detection stopped.")


@dataclass(slots=True)
class OpenAISpeechListener:
    """Records one utterance or one spoken yes/no answer at a time."""

    transcriber: MicrophoneTranscriber
    logger: logging.Logger = LOGGER
    _allow_patterns: list[re.Pattern[str]] = field(init=False, repr=False)
    _recording: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self._allow_patterns = compile_phrase_patterns(
            self.transcriber.voice_config.consent_allow_phrases
        )

    async def listen_for_speech(self, access_key: str) -> str:
        """Record an utterance and return its transcript."""
        return await asyncio.to_thread(self._listen_for_speech, access_key)

    async def listen_for_consent(self, access_key: str) -> str:
        """Record a short answer and return ``"allowed"`` or ``"denied"``."""
        return await asyncio.to_thread(self._listen_for_consent, access_key)

    def _listen_for_speech(self, access_key: str) -> str:
        if not self._recording.acquire(blocking=False):
            raise SpeechCaptureError("Recording already in progress")
        try:
            self.logger.info("Listening for speech...")
            pcm_audio: bytes = self.transcriber.record_clip(
                self.transcriber.voice_config.speech_listen_seconds
            )
            transcript: str = self.transcriber.transcribe(access_key, pcm_audio, clip_name="speech")
        except Exception as error:
            raise SpeechCaptureError(f"Speech recognition failed: {error}") from error
        finally:
            self._recording.release()

        if not transcript:
            raise SpeechCaptureError("No speech detected")
        return transcript

    def _listen_for_consent(self, access_key: str) -> str:
        if not self._recording.acquire(blocking=False):
            raise ConsentError("Recording already in progress")
        try:
            self.logger.info("Listening for verbal consent...")
            pcm_audio: bytes = self.transcriber.record_clip(
                self.transcriber.voice_config.consent_listen_seconds
            )
            transcript: str = self.transcriber.transcribe(access_key, pcm_audio, clip_name="consent")
        except Exception as error:
            raise ConsentError(f"Consent detection failed: {error}") from error
        finally:
            self._recording.release()

        result: str = interpret_consent(transcript, self._allow_patterns)
        self.logger.info("Consent detection completed with result: %s", result)
        return result
