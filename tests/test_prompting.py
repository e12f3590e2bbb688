from ivee_voice.prompting import (
    NO_CONVERSATION_YET,
    build_analysis_messages,
    build_reply_messages,
    consent_notice,
)


def test_reply_messages_introduce_assistant_and_carry_conversation():
    messages = build_reply_messages("User: hi", assistant_name="Ivee", user_name="Sam")

    assert [message.role for message in messages] == ["assistant", "user"]
    assert "Ivee" in messages[0].content
    assert "Sam" in messages[0].content
    assert "two sentences" in messages[0].content
    assert messages[1].content.endswith("User: hi")


def test_reply_messages_never_send_blank_conversation():
    messages = build_reply_messages("", assistant_name="Ivee", user_name="Sam")
    assert messages[1].content.endswith(NO_CONVERSATION_YET)


def test_analysis_messages_ask_for_one_sentence_about_screen_text():
    messages = build_analysis_messages("User: hello", "import os")

    assert messages[0].role == "assistant"
    assert messages[0].content == "User: hello"
    assert messages[1].role == "user"
    assert "one relevant short sentence" in messages[1].content
    assert messages[1].content.endswith("import os")


def test_analysis_messages_fill_empty_conversation():
    messages = build_analysis_messages("", "text")
    assert messages[0].content == NO_CONVERSATION_YET


def test_consent_notice():
    assert consent_notice("Sam", True) == "Sam gave permission."
    assert consent_notice("Sam", False) == "Sam did not give permission."
