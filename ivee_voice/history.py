"""Bounded, most-recent-first conversation log."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta

from ivee_voice.types import Event

MAX_HISTORY_EVENTS = 6

_TIMESTAMP_STEP = timedelta(microseconds=1)


def format_context_line(event: Event) -> str:
    """Render one event as a `speaker: text (Context: ...)` prompt line."""
    context_info: str = f" (Context: {event.context})" if event.context else ""
    return f"{event.speaker}: {event.text}{context_info}"


@dataclass(slots=True)
class EventHistory:
    """Holds the newest events first and evicts beyond `max_events`."""

    max_events: int = MAX_HISTORY_EVENTS
    _events: list[Event] = field(default_factory=list, init=False, repr=False)

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: Event) -> Event:
        """Insert an event at the front and return the stored copy.

        Timestamps are kept strictly increasing with insertion order; a
        colliding or earlier timestamp is moved just past the newest entry.
        """
        if self._events and event.timestamp <= self._events[0].timestamp:
            event = replace(event, timestamp=self._events[0].timestamp + _TIMESTAMP_STEP)
        self._events.insert(0, event)
        del self._events[self.max_events :]
        return event

    def snapshot(self) -> tuple[Event, ...]:
        """Return the current events, most recent first."""
        return tuple(self._events)

    def render_context(self, limit: int) -> str:
        """Format the spoken turns among the `limit` most recent events, oldest first."""
        if limit <= 0:
            return ""
        spoken: list[Event] = [
            event for event in self._events[:limit] if event.speaker and event.text
        ]
        return "\n".join(format_context_line(event) for event in reversed(spoken))
