"""Voice assistant with consent-gated screen analysis."""

from ivee_voice.assistant import VoiceAssistant
from ivee_voice.dispatch import classify_keyword
from ivee_voice.history import EventHistory
from ivee_voice.types import Event, KeywordFlow, ListeningState

__all__ = ["Event", "EventHistory", "KeywordFlow", "ListeningState", "VoiceAssistant", "classify_keyword"]
