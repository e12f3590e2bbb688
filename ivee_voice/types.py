"""Domain types shared across the assistant."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

USER_SPEAKER = "User"
CONSENT_ALLOWED = "allowed"
CONSENT_DENIED = "denied"


class ListeningState(str, Enum):
    """Process-wide listening mode; exactly one holds at a time."""

    IDLE = "idle"
    LISTENING = "listening"
    AWAITING_CONSENT = "awaiting_consent"


class KeywordFlow(str, Enum):
    """Conversational flow a detected keyword maps to."""

    WAKE = "wake"
    QUERY = "query"
    NONE = "none"


class ConsentStage(str, Enum):
    """Progress of the consent-gated screen analysis flow."""

    PROMPTING = "prompting"
    AWAITING_DECISION = "awaiting_decision"
    CAPTURING = "capturing"
    ANALYZING = "analyzing"
    RESPONDING = "responding"
    DECLINED = "declined"


class AudioCue(str, Enum):
    """Short pre-recorded sounds played around the pipelines."""

    PERMISSION = "permission"
    READY = "ready"
    CAPTURE = "capture"


@dataclass(slots=True, frozen=True)
class CapturedScreen:
    """Represents a screenshot, its extracted text, and metadata."""

    png_bytes: bytes
    width: int
    height: int
    captured_at: datetime
    mime_type: str = "image/png"
    text: str = ""


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """One role-tagged message sent to the language model."""

    role: str
    content: str


@dataclass(slots=True, frozen=True)
class Event:
    """One immutable entry in the conversation log."""

    timestamp: datetime
    speaker: str | None = None
    text: str | None = None
    screenshot: CapturedScreen | None = None
    context: str | None = None

    def __post_init__(self) -> None:
        if not self.text and self.screenshot is None:
            raise ValueError("An event needs text or a screenshot.")

    @classmethod
    def utterance(cls, speaker: str, text: str) -> "Event":
        """Build a spoken turn from the user or the assistant."""
        return cls(timestamp=datetime.now(timezone.utc), speaker=speaker, text=text)

    @classmethod
    def notice(cls, text: str) -> "Event":
        """Build a speaker-less system notice."""
        return cls(timestamp=datetime.now(timezone.utc), text=text)

    @classmethod
    def capture(cls, screen: CapturedScreen) -> "Event":
        """Build a screenshot entry annotated with the text found on screen."""
        return cls(
            timestamp=datetime.now(timezone.utc),
            screenshot=screen,
            context=screen.text or None,
        )
