"""Interaction orchestration: keyword dispatch, conversation, and screen analysis."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ivee_voice.config import ConversationConfig
from ivee_voice.dispatch import classify_keyword
from ivee_voice.errors import (
    AssistantError,
    CaptureError,
    ConsentError,
    DetectionError,
    InferenceError,
    SpeechCaptureError,
    SynthesisError,
    guarded,
)
from ivee_voice.history import EventHistory
from ivee_voice.interfaces import (
    AudioOutput,
    KeywordDetector,
    LanguageModel,
    ScreenReader,
    SpeechListener,
    SpeechSynthesizer,
)
from ivee_voice.poller import KeywordPoller
from ivee_voice.prompting import build_analysis_messages, build_reply_messages, consent_notice
from ivee_voice.synthesis import ResponseSynthesizer
from ivee_voice.types import (
    CONSENT_ALLOWED,
    USER_SPEAKER,
    AudioCue,
    CapturedScreen,
    ConsentStage,
    Event,
    KeywordFlow,
    ListeningState,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class VoiceAssistant:
    """Owns the listening state and conversation history, and runs both voice flows.

    All mutation happens on the event loop thread. Pipelines never raise:
    failures are logged and the latest message is kept in `error`.
    """

    keyword_detector: KeywordDetector
    speech_listener: SpeechListener
    screen_reader: ScreenReader
    language_model: LanguageModel
    speech_synthesizer: SpeechSynthesizer
    audio_output: AudioOutput
    config: ConversationConfig = field(default_factory=ConversationConfig)
    history: EventHistory = field(default_factory=EventHistory)
    on_event: Callable[[Event], None] | None = None
    logger: logging.Logger = LOGGER
    state: ListeningState = field(default=ListeningState.IDLE, init=False)
    consent_stage: ConsentStage | None = field(default=None, init=False)
    loading: bool = field(default=False, init=False)
    is_speech_listening: bool = field(default=False, init=False)
    error: str | None = field(default=None, init=False)
    _responder: ResponseSynthesizer = field(init=False, repr=False)
    _poller: KeywordPoller = field(init=False, repr=False)
    _consent_active: bool = field(default=False, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)
    _wake_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _cue_tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        self._responder = ResponseSynthesizer(
            speech_synthesizer=self.speech_synthesizer,
            audio_output=self.audio_output,
            logger=self.logger,
        )
        self._poller = KeywordPoller(
            poll=self._poll_keyword,
            dispatch=self.dispatch_keyword,
            on_error=self._surface_error,
            interval_seconds=self.config.poll_interval_seconds,
            logger=self.logger,
        )

    @property
    def polling(self) -> bool:
        """Return True while the keyword poller is scheduled."""
        return self._poller.running

    def snapshot(self) -> tuple[Event, ...]:
        """Return the conversation log, most recent first."""
        return self.history.snapshot()

    async def start_listening(self) -> None:
        """Start keyword detection and begin polling for keywords.

        While a consent flow is running, detection starts but polling waits
        until the flow resumes listening.
        """
        try:
            await self._call(
                self.keyword_detector.start(self.config.access_key),
                DetectionError,
                "Starting keyword detection",
            )
        except Exception as error:
            self._report("Error starting keyword detection", error)
            return
        self._closed = False
        if self._consent_active:
            self._transition(ListeningState.AWAITING_CONSENT)
        else:
            self._transition(ListeningState.LISTENING)
        self.error = None

    async def stop_listening(self) -> None:
        """Stop keyword detection. A pipeline already running is not interrupted."""
        try:
            await self._call(
                self.keyword_detector.stop(),
                DetectionError,
                "Stopping keyword detection",
            )
        except Exception as error:
            self._report("Error stopping keyword detection", error)
            return
        self._transition(ListeningState.IDLE)
        self.error = None

    async def dispatch_keyword(self, keyword: str) -> KeywordFlow:
        """Classify a keyword and run the flow it maps to."""
        flow: KeywordFlow = classify_keyword(keyword)
        if flow is KeywordFlow.WAKE:
            self.logger.info('Wake keyword "%s" detected.', keyword)
            await self.run_wake_flow()
        elif flow is KeywordFlow.QUERY:
            if self._consent_active:
                self.logger.info('Dropping "%s": a consent flow is already running.', keyword)
            else:
                self.logger.info('Query keyword "%s" detected.', keyword)
                await self.run_consent_flow()
        else:
            self.logger.debug('Ignoring unmapped keyword "%s".', keyword)
        return flow

    async def run_wake_flow(self) -> None:
        """Capture an utterance, answer it, and speak the answer."""
        if not self.config.serialize_wake_flows:
            await self._converse()
            return
        async with self._wake_lock:
            await self._converse()

    async def run_consent_flow(self) -> None:
        """Ask for permission, then read the screen and describe it aloud.

        Listening always resumes afterwards, whatever happened in between.
        """
        if self._consent_active:
            return

        self._consent_active = True
        self._transition(ListeningState.AWAITING_CONSENT)
        try:
            self.consent_stage = ConsentStage.PROMPTING
            await self._play_cue(AudioCue.PERMISSION)

            self.consent_stage = ConsentStage.AWAITING_DECISION
            decision: str = await self._call(
                self.speech_listener.listen_for_consent(self.config.access_key),
                ConsentError,
                "Listening for consent",
            )
            allowed: bool = str(decision).strip().lower() == CONSENT_ALLOWED
            self._record(Event.notice(consent_notice(self.config.user_name, allowed)))

            if not allowed:
                self.consent_stage = ConsentStage.DECLINED
                self.logger.info("Screen analysis declined.")
                return

            self.consent_stage = ConsentStage.CAPTURING
            await self._play_cue(AudioCue.CAPTURE)
            await self._analyze_screen()
        except Exception as error:
            self._report("Error in consent flow", error)
        finally:
            self.consent_stage = None
            self._consent_active = False
            await self._resume_listening()

    async def wait_until_settled(self) -> None:
        """Wait for in-flight keyword dispatches and pending cues."""
        while self._poller.pending_ticks or self._cue_tasks:
            await self._poller.wait_for_ticks()
            if self._cue_tasks:
                await asyncio.gather(*tuple(self._cue_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Stop polling and detection. In-flight pipelines run to completion.

        A consent flow that finishes after this does not resume listening.
        """
        self._closed = True
        self._poller.stop()
        if self.state is not ListeningState.IDLE:
            try:
                await self._call(
                    self.keyword_detector.stop(),
                    DetectionError,
                    "Stopping keyword detection",
                )
            except Exception as error:
                self._report("Error stopping keyword detection", error)
        self._transition(ListeningState.IDLE)

    async def _converse(self) -> None:
        try:
            self._schedule_cue(AudioCue.READY, delay=self.config.ready_cue_delay_seconds)
            transcript: str = await self._listen_for_speech()
            self._record(Event.utterance(USER_SPEAKER, transcript))
            reply: str = await self._generate_reply()
            await self._speak(reply)
        except Exception as error:
            self._report("Error processing wake command", error)

    async def _listen_for_speech(self) -> str:
        self.is_speech_listening = True
        try:
            transcript: str = await self._call(
                self.speech_listener.listen_for_speech(self.config.access_key),
                SpeechCaptureError,
                "Listening for speech",
            )
        finally:
            self.is_speech_listening = False

        cleaned: str = str(transcript).strip()
        if not cleaned:
            raise SpeechCaptureError("No speech detected")
        self.logger.info("Speech recognized: %s", cleaned)
        return cleaned

    async def _generate_reply(self) -> str:
        conversation: str = self.history.render_context(self.config.reply_context_events)
        reply: str = await self._call(
            self.language_model.complete(
                messages=build_reply_messages(
                    conversation,
                    assistant_name=self.config.assistant_name,
                    user_name=self.config.user_name,
                ),
                model=self.config.reply_model,
                max_tokens=self.config.reply_max_tokens,
            ),
            InferenceError,
            "Generating reply",
        )
        return self._record_assistant_turn(reply)

    async def _analyze_screen(self) -> None:
        self.loading = True
        try:
            screen: CapturedScreen = await self._call(
                self.screen_reader.capture_with_text(),
                CaptureError,
                "Capturing screenshot",
            )
            self._record(Event.capture(screen))

            self.consent_stage = ConsentStage.ANALYZING
            conversation: str = self.history.render_context(self.config.analysis_context_events)
            analysis: str = await self._call(
                self.language_model.complete(
                    messages=build_analysis_messages(conversation, screen.text),
                    model=self.config.analysis_model,
                    max_tokens=self.config.analysis_max_tokens,
                ),
                InferenceError,
                "Analyzing screen text",
            )
            analysis = self._record_assistant_turn(analysis)

            self.consent_stage = ConsentStage.RESPONDING
            await self._speak(analysis)
        finally:
            self.loading = False

    def _record_assistant_turn(self, text: str) -> str:
        cleaned: str = str(text).strip()
        if not cleaned:
            raise InferenceError("Language model returned an empty response.")
        self._record(Event.utterance(self.config.assistant_name, cleaned))
        self.logger.info("%s: %s", self.config.assistant_name, cleaned)
        return cleaned

    async def _speak(self, text: str) -> None:
        await self._call(self._responder.speak(text), SynthesisError, "Speaking response")

    async def _play_cue(self, cue: AudioCue) -> None:
        await self._call(self.audio_output.play_cue(cue), SynthesisError, f"Playing {cue.value} cue")

    def _schedule_cue(self, cue: AudioCue, *, delay: float) -> None:
        task: asyncio.Task[None] = asyncio.get_running_loop().create_task(
            self._play_cue_later(cue, delay)
        )
        self._cue_tasks.add(task)
        task.add_done_callback(self._cue_tasks.discard)

    async def _play_cue_later(self, cue: AudioCue, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self._play_cue(cue)
        except AssistantError as error:
            self.logger.warning("Cue playback failed: %s", error)

    async def _poll_keyword(self) -> str | None:
        return await self._call(
            self.keyword_detector.poll_last_keyword(),
            DetectionError,
            "Polling for keyword",
        )

    async def _resume_listening(self) -> None:
        if self._closed:
            self._transition(ListeningState.IDLE)
            return
        self._transition(ListeningState.LISTENING)
        try:
            await self._call(
                self.keyword_detector.start(self.config.access_key),
                DetectionError,
                "Restarting keyword detection",
            )
        except Exception as error:
            self._report("Error restarting keyword detection", error)

    async def _call(
        self,
        awaitable: Awaitable[T],
        error_type: type[AssistantError],
        operation: str,
    ) -> T:
        return await guarded(
            awaitable,
            error_type=error_type,
            operation=operation,
            timeout=self.config.call_timeout_seconds,
        )

    def _transition(self, state: ListeningState) -> None:
        previous: ListeningState = self.state
        self.state = state
        if state is ListeningState.LISTENING:
            self._poller.start()
        else:
            self._poller.stop()
        if previous is not state:
            self.logger.debug("Listening state %s -> %s", previous.value, state.value)

    def _record(self, event: Event) -> Event:
        stored: Event = self.history.append(event)
        if self.on_event is not None:
            self.on_event(stored)
        return stored

    def _report(self, context: str, error: Exception) -> None:
        self.logger.error("%s: %s", context, error)
        self.error = str(error)

    def _surface_error(self, error: Exception) -> None:
        """Keep a poll failure in `error`; the poller has already logged it."""
        self.error = str(error)
