"""Prompt-building helpers."""

from __future__ import annotations

from ivee_voice.types import ChatMessage

NO_CONVERSATION_YET = "Nothing has been said yet."


def build_reply_messages(
    conversation: str,
    *,
    assistant_name: str,
    user_name: str,
) -> list[ChatMessage]:
    """Build the messages for a short spoken reply to the recent conversation."""
    return [
        ChatMessage(
            role="assistant",
            content=(
                f"Hi, today I am your assistant named {assistant_name} and you are "
                f"{user_name}. I can only say up to two sentences at a time. "
                "How can I help you?"
            ),
        ),
        ChatMessage(
            role="user",
            content=(
                "Awesome to hear that! Here is what we talked about, say the two "
                f"sentences in response to all this: {conversation or NO_CONVERSATION_YET}"
            ),
        ),
    ]


def build_analysis_messages(conversation: str, screen_text: str) -> list[ChatMessage]:
    """Build the messages asking for a one-sentence read of the user's screen."""
    return [
        ChatMessage(role="assistant", content=conversation or NO_CONVERSATION_YET),
        ChatMessage(
            role="user",
            content=(
                "Describe in just one relevant short sentence based on this OCR of my "
                f"screen, what you think I am working on: {screen_text}"
            ),
        ),
    ]


def consent_notice(user_name: str, allowed: bool) -> str:
    """Describe a consent decision for the conversation log."""
    if allowed:
        return f"{user_name} gave permission."
    return f"{user_name} did not give permission."
