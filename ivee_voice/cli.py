"""Command-line interface for the voice assistant."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace

from dotenv import load_dotenv

from ivee_voice.assistant import VoiceAssistant
from ivee_voice.audio import LocalAudioOutput, default_cue_paths
from ivee_voice.config import AssistantConfig, ConversationConfig, ElevenLabsConfig, split_csv
from ivee_voice.elevenlabs_client import ElevenLabsSpeechSynthesizer
from ivee_voice.openai_client import OpenAILanguageModel, OpenAIScreenTextExtractor
from ivee_voice.screen import MSSScreenCapturer, MSSScreenReader
from ivee_voice.types import Event
from ivee_voice.voice_engine import MicrophoneTranscriber, OpenAIKeywordDetector, OpenAISpeechListener

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(description="Voice assistant with consent-gated screen analysis.")
    parser.add_argument("--poll-interval", type=float, default=None, help="Seconds between keyword polls.")
    parser.add_argument(
        "--keywords",
        type=str,
        default=None,
        help="Comma-separated phrases; the first wakes, the second asks about the screen.",
    )
    parser.add_argument(
        "--serialize-wake",
        action="store_true",
        help="Queue overlapping wake requests instead of running them side by side.",
    )
    parser.add_argument(
        "--call-timeout",
        type=float,
        default=None,
        help="Timeout in seconds for each external call (0 disables).",
    )
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds.")
    parser.add_argument("--monitor-index", type=int, default=None, help="mss monitor index (default from env).")
    return parser


def configure_logging(level: str) -> None:
    """Configure process logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def render_event(event: Event) -> str:
    """Format an event as one line of the conversation log."""
    clock: str = event.timestamp.astimezone().strftime("%H:%M:%S")
    if event.screenshot is not None:
        text: str = event.context or "(no text found on screen)"
        return f"[{clock}] Screenshot: {text}"
    if event.speaker:
        return f"[{clock}] {event.speaker}: {event.text}"
    return f"[{clock}] {event.text}"


def _apply_overrides(conversation: ConversationConfig, args: argparse.Namespace) -> ConversationConfig:
    """Layer CLI overrides on top of environment settings."""
    if args.poll_interval is not None:
        conversation = replace(conversation, poll_interval_seconds=args.poll_interval)
    if args.serialize_wake:
        conversation = replace(conversation, serialize_wake_flows=True)
    if args.call_timeout is not None:
        timeout: float | None = args.call_timeout if args.call_timeout > 0 else None
        conversation = replace(conversation, call_timeout_seconds=timeout)
    return conversation


def build_assistant(args: argparse.Namespace) -> tuple[VoiceAssistant, AssistantConfig]:
    """Construct fully wired assistant from environment config + CLI overrides."""
    config: AssistantConfig = AssistantConfig.from_env()
    configure_logging(config.log_level)

    voice_config = config.voice
    if args.keywords is not None:
        phrases: tuple[str, ...] = split_csv(args.keywords)
        voice_config = replace(voice_config, keyword_phrases=phrases or voice_config.keyword_phrases)

    transcriber = MicrophoneTranscriber(
        voice_config=voice_config,
        timeout_seconds=config.openai.timeout_seconds,
        logger=logging.getLogger("ivee_voice.voice_engine"),
    )

    monitor_index: int = args.monitor_index if args.monitor_index is not None else config.monitor_index
    screen_reader = MSSScreenReader(
        capturer=MSSScreenCapturer(monitor_index=monitor_index),
        text_extractor=OpenAIScreenTextExtractor(config=config.openai),
    )

    elevenlabs_config: ElevenLabsConfig = ElevenLabsConfig.from_env()
    audio_output = LocalAudioOutput(
        output_dir=config.artifacts_dir / "audio",
        cue_paths=default_cue_paths(config.cue_dir),
    )

    assistant = VoiceAssistant(
        keyword_detector=OpenAIKeywordDetector(transcriber=transcriber),
        speech_listener=OpenAISpeechListener(transcriber=transcriber),
        screen_reader=screen_reader,
        language_model=OpenAILanguageModel(config=config.openai),
        speech_synthesizer=ElevenLabsSpeechSynthesizer(elevenlabs_config),
        audio_output=audio_output,
        config=_apply_overrides(config.conversation, args),
        on_event=lambda event: print(render_event(event), flush=True),
        logger=logging.getLogger("ivee_voice.assistant"),
    )
    return assistant, config


async def serve(assistant: VoiceAssistant, *, duration_seconds: float | None = None) -> int:
    """Listen for keywords until cancelled or until the duration elapses."""
    await assistant.start_listening()
    if assistant.error is not None:
        LOGGER.error("Could not start listening: %s", assistant.error)
        return 1
    LOGGER.info("Listening for keywords. Press Ctrl+C to stop.")
    try:
        if duration_seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration_seconds)
    finally:
        await assistant.aclose()
    return 0


def run(args: argparse.Namespace) -> int:
    """Run the assistant command and return exit code."""
    load_dotenv()
    assistant, _ = build_assistant(args)
    try:
        return asyncio.run(serve(assistant, duration_seconds=args.duration))
    except KeyboardInterrupt:
        LOGGER.info("Stopped by user.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)
