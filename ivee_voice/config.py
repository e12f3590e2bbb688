"""Environment-driven configuration models."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_KEYWORD_PHRASES: tuple[str, ...] = ("hey ivee", "what do you see")
DEFAULT_CONSENT_ALLOW_PHRASES: tuple[str, ...] = (
    "yes",
    "yeah",
    "sure",
    "allow",
    "go ahead",
    "okay",
)


def _get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable or the provided default value."""
    value: str | None = os.getenv(name)
    if value is None:
        return default
    stripped: str = value.strip()
    return stripped if stripped else default


def _require_env(name: str) -> str:
    """Return a required environment variable or raise a ValueError."""
    value: str | None = _get_env(name)
    if value is None:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _get_env_float(name: str, default: float) -> float:
    """Return an environment variable parsed as float."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return float(value)


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable parsed as int."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return int(value)


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable parsed as bool."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "y", "on"}


def split_csv(value: str) -> tuple[str, ...]:
    """Split a comma-separated string into a tuple of non-empty values."""
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _get_env_csv(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Return an environment variable parsed as comma-separated values."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return split_csv(value) or default


@dataclass(slots=True, frozen=True)
class OpenAIConfig:
    """OpenAI client settings."""

    api_key: str
    temperature: float = 0.5
    timeout_seconds: float = 45.0
    ocr_model: str = "gpt-4.1-mini"

    @classmethod
    def from_env(cls) -> "OpenAIConfig":
        """Load OpenAI settings from environment variables."""
        return cls(
            api_key=_require_env("OPENAI_API_KEY"),
            temperature=_get_env_float("OPENAI_TEMPERATURE", 0.5),
            timeout_seconds=_get_env_float("OPENAI_TIMEOUT_SECONDS", 45.0),
            ocr_model=_get_env("OPENAI_OCR_MODEL", "gpt-4.1-mini") or "gpt-4.1-mini",
        )


@dataclass(slots=True, frozen=True)
class ElevenLabsConfig:
    """ElevenLabs synthesis settings."""

    api_key: str
    voice_id: str
    model_id: str = "eleven_turbo_v2"
    output_format: str = "pcm_16000"
    stability: float = 0.5
    similarity_boost: float = 0.5
    timeout_seconds: float = 45.0

    @classmethod
    def from_env(cls) -> "ElevenLabsConfig":
        """Load ElevenLabs settings from environment variables."""
        return cls(
            api_key=_require_env("ELEVENLABS_API_KEY"),
            voice_id=_require_env("ELEVENLABS_VOICE_ID"),
            model_id=_get_env("ELEVENLABS_MODEL_ID", "eleven_turbo_v2") or "eleven_turbo_v2",
            output_format=_get_env("ELEVENLABS_OUTPUT_FORMAT", "pcm_16000") or "pcm_16000",
            stability=_get_env_float("ELEVENLABS_STABILITY", 0.5),
            similarity_boost=_get_env_float("ELEVENLABS_SIMILARITY_BOOST", 0.5),
            timeout_seconds=_get_env_float("ELEVENLABS_TIMEOUT_SECONDS", 45.0),
        )


@dataclass(slots=True, frozen=True)
class VoiceEngineConfig:
    """Microphone recording and transcription settings."""

    transcription_model: str = "gpt-4o-mini-transcribe"
    sample_rate: int = 16000
    keyword_phrases: tuple[str, ...] = DEFAULT_KEYWORD_PHRASES
    keyword_listen_seconds: float = 2.0
    speech_listen_seconds: float = 5.0
    consent_listen_seconds: float = 3.0
    consent_allow_phrases: tuple[str, ...] = DEFAULT_CONSENT_ALLOW_PHRASES

    @classmethod
    def from_env(cls) -> "VoiceEngineConfig":
        """Load voice engine settings from environment variables."""
        return cls(
            transcription_model=_get_env("VOICE_TRANSCRIPTION_MODEL", "gpt-4o-mini-transcribe")
            or "gpt-4o-mini-transcribe",
            sample_rate=_get_env_int("VOICE_SAMPLE_RATE", 16000),
            keyword_phrases=_get_env_csv("VOICE_KEYWORD_PHRASES", DEFAULT_KEYWORD_PHRASES),
            keyword_listen_seconds=_get_env_float("VOICE_KEYWORD_LISTEN_SECONDS", 2.0),
            speech_listen_seconds=_get_env_float("VOICE_SPEECH_LISTEN_SECONDS", 5.0),
            consent_listen_seconds=_get_env_float("VOICE_CONSENT_LISTEN_SECONDS", 3.0),
            consent_allow_phrases=_get_env_csv(
                "VOICE_CONSENT_ALLOW_PHRASES", DEFAULT_CONSENT_ALLOW_PHRASES
            ),
        )


@dataclass(slots=True, frozen=True)
class ConversationConfig:
    """Settings for the interaction orchestrator."""

    access_key: str = ""
    assistant_name: str = "Ivee"
    user_name: str = "User"
    reply_model: str = "gpt-4.1-mini"
    reply_max_tokens: int = 150
    reply_context_events: int = 3
    analysis_model: str = "gpt-4.1"
    analysis_max_tokens: int = 2024
    analysis_context_events: int = 5
    poll_interval_seconds: float = 1.0
    ready_cue_delay_seconds: float = 0.1
    call_timeout_seconds: float | None = 60.0
    serialize_wake_flows: bool = False

    @classmethod
    def from_env(cls, *, default_access_key: str = "") -> "ConversationConfig":
        """Load orchestrator settings from environment variables."""
        timeout: float = _get_env_float("ASSISTANT_CALL_TIMEOUT_SECONDS", 60.0)
        return cls(
            access_key=_get_env("ASSISTANT_ACCESS_KEY", default_access_key) or default_access_key,
            assistant_name=_get_env("ASSISTANT_NAME", "Ivee") or "Ivee",
            user_name=_get_env("ASSISTANT_USER_NAME", "User") or "User",
            reply_model=_get_env("ASSISTANT_REPLY_MODEL", "gpt-4.1-mini") or "gpt-4.1-mini",
            reply_max_tokens=_get_env_int("ASSISTANT_REPLY_MAX_TOKENS", 150),
            reply_context_events=_get_env_int("ASSISTANT_REPLY_CONTEXT_EVENTS", 3),
            analysis_model=_get_env("ASSISTANT_ANALYSIS_MODEL", "gpt-4.1") or "gpt-4.1",
            analysis_max_tokens=_get_env_int("ASSISTANT_ANALYSIS_MAX_TOKENS", 2024),
            analysis_context_events=_get_env_int("ASSISTANT_ANALYSIS_CONTEXT_EVENTS", 5),
            poll_interval_seconds=_get_env_float("ASSISTANT_POLL_INTERVAL_SECONDS", 1.0),
            ready_cue_delay_seconds=_get_env_float("ASSISTANT_READY_CUE_DELAY_SECONDS", 0.1),
            call_timeout_seconds=timeout if timeout > 0 else None,
            serialize_wake_flows=_get_env_bool("ASSISTANT_SERIALIZE_WAKE_FLOWS", False),
        )


@dataclass(slots=True, frozen=True)
class AssistantConfig:
    """Runtime settings for the whole voice client."""

    openai: OpenAIConfig
    voice: VoiceEngineConfig
    conversation: ConversationConfig
    artifacts_dir: Path
    cue_dir: Path
    monitor_index: int
    log_level: str

    @classmethod
    def from_env(cls) -> "AssistantConfig":
        """Load assistant runtime settings from environment variables."""
        openai_config: OpenAIConfig = OpenAIConfig.from_env()
        return cls(
            openai=openai_config,
            voice=VoiceEngineConfig.from_env(),
            conversation=ConversationConfig.from_env(default_access_key=openai_config.api_key),
            artifacts_dir=Path(_get_env("ASSISTANT_ARTIFACTS_DIR", "./artifacts") or "./artifacts"),
            cue_dir=Path(_get_env("ASSISTANT_CUE_DIR", "./resources/cues") or "./resources/cues"),
            monitor_index=_get_env_int("ASSISTANT_MONITOR_INDEX", 1),
            log_level=_get_env("ASSISTANT_LOG_LEVEL", "INFO") or "INFO",
        )
