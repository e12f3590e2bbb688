import asyncio
from dataclasses import replace

import pytest

from ivee_voice.types import AudioCue, KeywordFlow


class TestWakeFlow:
    @pytest.mark.asyncio
    async def test_wake_keyword_records_both_turns_and_speaks_reply(
        self, assistant, speech_synthesizer, audio_output
    ):
        flow = await assistant.dispatch_keyword("0")

        assert flow is KeywordFlow.WAKE
        events = assistant.snapshot()
        assert len(events) == 2
        assert (events[0].speaker, events[0].text) == ("Ivee", "Sure, turning them on.")
        assert (events[1].speaker, events[1].text) == ("User", "turn on the lights")
        assert events[1].timestamp < events[0].timestamp
        speech_synthesizer.synthesize.assert_awaited_once_with("Sure, turning them on.")
        audio_output.play.assert_awaited_once_with(b"RIFF fake wav")
        assert assistant.error is None

    @pytest.mark.asyncio
    async def test_reply_request_uses_recent_conversation_and_budget(
        self, assistant, language_model, speech_listener, conversation_config
    ):
        await assistant.dispatch_keyword("0")
        speech_listener.listen_for_speech.return_value = "and the heater"
        await assistant.dispatch_keyword("0")

        kwargs = language_model.complete.await_args.kwargs
        assert kwargs["model"] == conversation_config.reply_model
        assert kwargs["max_tokens"] == 150
        prompt = kwargs["messages"][1].content
        assert prompt.endswith(
            "User: turn on the lights\n"
            "Ivee: Sure, turning them on.\n"
            "User: and the heater"
        )
        speech_listener.listen_for_speech.assert_awaited_with("test-key")

    @pytest.mark.asyncio
    async def test_reply_context_drops_older_turns(self, assistant, language_model, speech_listener):
        for utterance in ("first", "second", "third"):
            speech_listener.listen_for_speech.return_value = utterance
            language_model.complete.return_value = f"reply to {utterance}"
            await assistant.dispatch_keyword("0")

        prompt = language_model.complete.await_args.kwargs["messages"][1].content
        assert "first" not in prompt
        assert prompt.endswith("User: second\nIvee: reply to second\nUser: third")

    @pytest.mark.asyncio
    async def test_ready_cue_plays_without_blocking_capture(self, assistant, audio_output):
        await assistant.dispatch_keyword("Keyword 0 detected")
        await assistant.wait_until_settled()

        audio_output.play_cue.assert_awaited_once_with(AudioCue.READY)

    @pytest.mark.asyncio
    async def test_ready_cue_failure_does_not_fail_flow(self, assistant, audio_output):
        audio_output.play_cue.side_effect = RuntimeError("speaker busy")

        await assistant.dispatch_keyword("0")
        await assistant.wait_until_settled()

        assert len(assistant.snapshot()) == 2
        assert assistant.error is None

    @pytest.mark.asyncio
    async def test_silence_surfaces_error_without_events(
        self, assistant, speech_listener, language_model
    ):
        speech_listener.listen_for_speech.return_value = "   "

        await assistant.dispatch_keyword("0")

        assert assistant.snapshot() == ()
        assert assistant.error == "No speech detected"
        assert assistant.is_speech_listening is False
        language_model.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_speech_engine_failure_is_reported(self, assistant, speech_listener):
        speech_listener.listen_for_speech.side_effect = RuntimeError("microphone unplugged")

        await assistant.dispatch_keyword("0")

        assert assistant.snapshot() == ()
        assert "microphone unplugged" in assistant.error

    @pytest.mark.asyncio
    async def test_model_failure_keeps_user_turn(
        self, assistant, language_model, speech_synthesizer
    ):
        language_model.complete.side_effect = RuntimeError("rate limited")

        await assistant.dispatch_keyword("0")

        events = assistant.snapshot()
        assert [event.speaker for event in events] == ["User"]
        assert "rate limited" in assistant.error
        speech_synthesizer.synthesize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_model_reply_is_an_error(self, assistant, language_model):
        language_model.complete.return_value = "  "

        await assistant.dispatch_keyword("0")

        assert len(assistant.snapshot()) == 1
        assert assistant.error == "Language model returned an empty response."

    @pytest.mark.asyncio
    async def test_synthesis_failure_keeps_both_turns(self, assistant, speech_synthesizer):
        speech_synthesizer.synthesize.side_effect = RuntimeError("401 Unauthorized")

        await assistant.dispatch_keyword("0")

        assert len(assistant.snapshot()) == 2
        assert "401 Unauthorized" in assistant.error

    @pytest.mark.asyncio
    async def test_stalled_speech_engine_times_out(
        self, make_assistant, conversation_config, speech_listener
    ):
        async def never_answers(access_key):
            await asyncio.sleep(10)

        speech_listener.listen_for_speech.side_effect = never_answers
        assistant = make_assistant(replace(conversation_config, call_timeout_seconds=0.05))

        await assistant.dispatch_keyword("0")

        assert "timed out" in assistant.error
        assert assistant.snapshot() == ()

    @pytest.mark.asyncio
    async def test_unmapped_keyword_is_ignored(self, assistant, speech_listener):
        flow = await assistant.dispatch_keyword("Keyword 7 detected")

        assert flow is KeywordFlow.NONE
        speech_listener.listen_for_speech.assert_not_awaited()
        speech_listener.listen_for_consent.assert_not_awaited()


class TestOverlappingWakeFlows:
    @staticmethod
    def gated_listener(speech_listener):
        gate = asyncio.Event()
        counts = {"active": 0, "peak": 0}

        async def listen(access_key):
            counts["active"] += 1
            counts["peak"] = max(counts["peak"], counts["active"])
            await gate.wait()
            counts["active"] -= 1
            return "hello"

        speech_listener.listen_for_speech.side_effect = listen
        return gate, counts

    @pytest.mark.asyncio
    async def test_overlapping_wake_flows_run_side_by_side_by_default(
        self, assistant, speech_listener
    ):
        # Known hazard: nothing stops a second wake flow while one is in flight.
        gate, counts = self.gated_listener(speech_listener)

        first = asyncio.create_task(assistant.dispatch_keyword("0"))
        second = asyncio.create_task(assistant.dispatch_keyword("0"))
        await asyncio.sleep(0.02)
        gate.set()
        await asyncio.gather(first, second)

        assert counts["peak"] == 2
        assert len(assistant.snapshot()) == 4

    @pytest.mark.asyncio
    async def test_serialized_wake_flows_never_overlap(
        self, make_assistant, conversation_config, speech_listener
    ):
        gate, counts = self.gated_listener(speech_listener)
        assistant = make_assistant(replace(conversation_config, serialize_wake_flows=True))

        first = asyncio.create_task(assistant.dispatch_keyword("0"))
        second = asyncio.create_task(assistant.dispatch_keyword("0"))
        await asyncio.sleep(0.02)
        assert speech_listener.listen_for_speech.await_count == 1
        gate.set()
        await asyncio.gather(first, second)

        assert counts["peak"] == 1
        speakers = [event.speaker for event in assistant.snapshot()]
        assert speakers == ["Ivee", "User", "Ivee", "User"]
