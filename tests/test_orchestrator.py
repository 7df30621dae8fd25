"""Tests for the conversation orchestrator graph."""

import asyncio
import json
import logging

import pytest

from app.exceptions import ConversationFailedError
from app.graphs.conversation import ConversationOrchestrator, create_initial_state
from app.graphs.state import ConversationPhase
from app.models.events import LifecycleKind
from app.models.llm import BlockDelta, BlockStart, BlockStop, Message
from app.services.relay import EventRelay


@pytest.fixture
def make_orchestrator(registry, executor):
    def factory(provider, max_tool_rounds: int = 3, turn_timeout_seconds: float | None = 5):
        return ConversationOrchestrator(
            provider=provider,
            registry=registry,
            executor=executor,
            max_tool_rounds=max_tool_rounds,
            turn_timeout_seconds=turn_timeout_seconds,
        )

    return factory


async def collect(orchestrator, message="Hi", caller_id="12345", history=None):
    return [event async for event in orchestrator.run(message, caller_id, history)]


def kinds(events):
    return [event.kind for event in events]


class TestPlainReply:
    """A reply with no tool calls."""

    @pytest.mark.asyncio
    async def test_streams_text_then_completes(self, make_orchestrator, provider_factory, script):
        """Test that text is relayed as it arrives and the run completes with it."""
        provider = provider_factory([script.text("Hey ", "Marcus!")])

        events = await collect(make_orchestrator(provider), message="Hello")

        assert kinds(events) == [
            LifecycleKind.TEXT_START,
            LifecycleKind.TEXT_DELTA,
            LifecycleKind.TEXT_DELTA,
            LifecycleKind.COMPLETE,
        ]
        assert events[-1].data == {"response": "Hey Marcus!", "tools_used": []}
        assert len(provider.calls) == 1
        assert provider.calls[0][-1].content == "Hello"

    @pytest.mark.asyncio
    async def test_prior_history_is_submitted(self, make_orchestrator, provider_factory, script):
        """Test that client-supplied history precedes the new message."""
        provider = provider_factory([script.text("Sure.")])
        history = [Message(role="user", content="Hi"), Message(role="assistant", content="Hello!")]

        await collect(make_orchestrator(provider), message="Find me a camp", history=history)

        submitted = provider.calls[0]
        assert [(message.role, message.text) for message in submitted] == [
            ("user", "Hi"),
            ("assistant", "Hello!"),
            ("user", "Find me a camp"),
        ]

    @pytest.mark.asyncio
    async def test_system_prompt_and_tools_are_sent(self, make_orchestrator, provider_factory, script):
        """Test that each turn carries the caller-specific prompt and every tool."""
        provider = provider_factory([script.text("Hi")])

        await collect(make_orchestrator(provider), caller_id="12346")

        assert "Athlete GMTM user ID: 12346" in provider.system_prompts[0]
        assert len(provider.tools[0]) == 6


class TestToolRound:
    """A reply that calls tools before answering."""

    @pytest.mark.asyncio
    async def test_tool_round_then_answer(self, make_orchestrator, provider_factory, script):
        """Test the full lifecycle of one tool round."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "get_athlete_profile", {})),
                script.text("Your 40 is 4.52s."),
            ]
        )

        events = await collect(make_orchestrator(provider), message="What's my 40 time?")

        assert kinds(events) == [
            LifecycleKind.TOOL_START,
            LifecycleKind.TOOL_COMPLETE,
            LifecycleKind.TOOLS_EXECUTING,
            LifecycleKind.TOOLS_COMPLETE,
            LifecycleKind.TEXT_START,
            LifecycleKind.TEXT_DELTA,
            LifecycleKind.COMPLETE,
        ]
        assert events[2].data == {"count": 1}
        results = events[3].data["results"]
        assert results[0]["tool_use_id"] == "toolu_1"
        assert results[0]["is_error"] is False
        assert events[-1].data == {"response": "Your 40 is 4.52s.", "tools_used": ["get_athlete_profile"]}

    @pytest.mark.asyncio
    async def test_call_and_results_are_appended_to_history(self, make_orchestrator, provider_factory, script):
        """Test that the follow-up turn sees the tool call and its result."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "search_opportunities", {"position": "WR"}), text="Let me search. "),
                script.text("Found 3."),
            ]
        )

        await collect(make_orchestrator(provider))

        follow_up = provider.calls[1]
        assert [message.role for message in follow_up] == ["user", "assistant", "user"]
        assistant, results = follow_up[1], follow_up[2]
        assert assistant.text == "Let me search. "
        assert [call.id for call in assistant.tool_calls] == ["toolu_1"]
        assert assistant.tool_calls[0].input == {"position": "WR"}
        assert results.tool_results[0].tool_use_id == "toolu_1"
        assert json.loads(results.tool_results[0].content)["count"] == 3

    @pytest.mark.asyncio
    async def test_response_joins_text_of_every_turn(self, make_orchestrator, provider_factory, script):
        """Test that text before and after the tool round both reach the response."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "get_athlete_profile", {}), text="Checking your profile. "),
                script.text("You're a WR."),
            ]
        )

        events = await collect(make_orchestrator(provider))

        assert events[-1].data["response"] == "Checking your profile. You're a WR."

    @pytest.mark.asyncio
    async def test_failed_tool_does_not_fail_the_run(self, make_orchestrator, provider_factory, script):
        """Test that tool errors are reported to the model and the run still completes."""
        provider = provider_factory(
            [
                script.tools(
                    ("toolu_1", "book_flight", {}),
                    ("toolu_2", "get_athlete_profile", {}),
                ),
                script.text("I couldn't book that, but here is your profile."),
            ]
        )

        events = await collect(make_orchestrator(provider))

        results = events[kinds(events).index(LifecycleKind.TOOLS_COMPLETE)].data["results"]
        assert [result["is_error"] for result in results] == [True, False]
        assert json.loads(results[0]["content"]) == {"error": "Unknown tool: book_flight"}
        assert events[-1].kind == LifecycleKind.COMPLETE
        assert events[-1].data["tools_used"] == ["book_flight", "get_athlete_profile"]
        assert provider.calls[1][-1].tool_results[0].is_error is True

    @pytest.mark.asyncio
    async def test_multiple_rounds(self, make_orchestrator, provider_factory, script):
        """Test that the model may chain tool rounds up to the limit."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "get_athlete_profile", {})),
                script.tools(("toolu_2", "search_opportunities", {"position": "WR"})),
                script.text("Here are your options."),
            ]
        )

        events = await collect(make_orchestrator(provider, max_tool_rounds=3))

        assert kinds(events).count(LifecycleKind.TOOLS_EXECUTING) == 2
        assert events[-1].data["tools_used"] == ["get_athlete_profile", "search_opportunities"]
        assert len(provider.calls[2]) == 5

    @pytest.mark.asyncio
    async def test_usage_is_summed_across_turns(self, make_orchestrator, provider_factory, script, caplog):
        """Test that token usage from every turn is reported when the run completes."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "get_athlete_profile", {})),
                script.text("Done."),
            ]
        )

        with caplog.at_level(logging.INFO, logger="app.graphs.nodes"):
            await collect(make_orchestrator(provider))

        assert "tokens: 250 (200 in, 50 out), cache hit rate: 0.0%" in caplog.text


class TestToolRoundLimit:
    """Tool calls past the round limit."""

    @pytest.mark.asyncio
    async def test_calls_past_limit_are_not_executed(self, make_orchestrator, provider_factory, script):
        """Test that the run finalizes instead of executing another round."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "get_athlete_profile", {})),
                script.tools(("toolu_2", "search_opportunities", {"position": "WR"}), text="One more search."),
            ]
        )

        events = await collect(make_orchestrator(provider, max_tool_rounds=1))

        assert len(provider.calls) == 2
        assert kinds(events).count(LifecycleKind.TOOLS_EXECUTING) == 1
        assert kinds(events).count(LifecycleKind.TOOL_START) == 2
        assert events[-1].kind == LifecycleKind.COMPLETE
        assert events[-1].data == {"response": "One more search.", "tools_used": ["get_athlete_profile"]}

    @pytest.mark.asyncio
    async def test_zero_rounds_never_executes_tools(self, make_orchestrator, provider_factory, script):
        """Test that a limit of zero answers from the first turn alone."""
        provider = provider_factory([script.tools(("toolu_1", "get_athlete_profile", {}), text="Let me check.")])

        events = await collect(make_orchestrator(provider, max_tool_rounds=0))

        assert LifecycleKind.TOOLS_EXECUTING not in kinds(events)
        assert events[-1].data == {"response": "Let me check.", "tools_used": []}

    def test_negative_limit_rejected(self, registry, executor, provider_factory):
        """Test that a negative round limit is refused."""
        with pytest.raises(ValueError, match="cannot be negative"):
            ConversationOrchestrator(provider_factory([]), registry, executor, max_tool_rounds=-1)


class TestFailures:
    """Failures that end the run."""

    @pytest.mark.asyncio
    async def test_provider_error_mid_stream(self, make_orchestrator, provider_factory):
        """Test that a transport error after some text fails the run."""
        provider = provider_factory(
            [
                [
                    BlockStart(index=0, block_type="text"),
                    BlockDelta(index=0, text="Let me"),
                    ConnectionError("connection reset"),
                ]
            ]
        )
        events = []

        with pytest.raises(ConversationFailedError, match="connection reset"):
            async for event in make_orchestrator(provider).run("Hi", "12345"):
                events.append(event)

        assert LifecycleKind.COMPLETE not in kinds(events)

    @pytest.mark.asyncio
    async def test_malformed_tool_arguments(self, make_orchestrator, provider_factory):
        """Test that undecodable tool arguments fail the run without executing anything."""
        provider = provider_factory(
            [
                [
                    BlockStart(index=0, block_type="tool_use", tool_id="toolu_1", tool_name="analyze_fit"),
                    BlockDelta(index=0, partial_json='{"opportunity_id": "comb'),
                    BlockStop(index=0),
                ]
            ]
        )

        with pytest.raises(ConversationFailedError, match="Could not decode the model response") as exc_info:
            await collect(make_orchestrator(provider))

        assert "analyze_fit" in exc_info.value.message
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_stream_ending_inside_tool_call(self, make_orchestrator, provider_factory):
        """Test that a stream cut off mid tool call fails the run."""
        provider = provider_factory(
            [
                [
                    BlockStart(index=0, block_type="tool_use", tool_id="toolu_1", tool_name="get_athlete_profile"),
                    BlockDelta(index=0, partial_json="{"),
                ]
            ]
        )

        with pytest.raises(ConversationFailedError, match="Stream ended inside tool call block"):
            await collect(make_orchestrator(provider))

    @pytest.mark.asyncio
    async def test_turn_timeout(self, make_orchestrator, provider_factory):
        """Test that a model turn exceeding its limit fails the run."""
        provider = provider_factory([])

        async def stalled_stream(messages, system_prompt, tools=None):
            yield BlockStart(index=0, block_type="text")
            await asyncio.sleep(1)
            yield BlockStop(index=0)

        provider.stream_message = stalled_stream

        with pytest.raises(ConversationFailedError, match="took too long"):
            await collect(make_orchestrator(provider, turn_timeout_seconds=0.01))


class TestOrchestratorHelpers:
    """Tests for state construction and message validation."""

    def test_initial_state(self):
        """Test that the new message is appended after the history."""
        state = create_initial_state(
            "Find me a camp",
            "12345",
            history=[Message(role="user", content="Hi")],
            max_tool_rounds=2,
            request_id="req-1",
        )

        assert [message.text for message in state.history] == ["Hi", "Find me a camp"]
        assert state.phase == ConversationPhase.SUBMITTED
        assert state.max_tool_rounds == 2
        assert state.request_id == "req-1"

    def test_validate_message_delegates_to_provider(self, make_orchestrator, provider_factory):
        """Test that oversized messages are rejected by the provider's limit."""
        orchestrator = make_orchestrator(provider_factory([], max_message_chars=10))

        orchestrator.validate_message("short")
        with pytest.raises(ValueError, match="Message exceeds token limit"):
            orchestrator.validate_message("this message is too long")


TRACK_UNKNOWN_CAMP = {"opportunity_id": "camp_999", "athlete_user_id": 12345, "status": "applied"}


class TestRelayedScenarios:
    """Whole requests as the client sees them on the wire."""

    async def _wire(self, orchestrator, message: str) -> list[tuple[str, dict]]:
        relay = EventRelay(orchestrator)
        return [(event["event"], json.loads(event["data"])) async for event in relay.stream(message, "12345")]

    @pytest.mark.asyncio
    async def test_plain_answer(self, make_orchestrator, provider_factory, script):
        """Test a message answered without tools."""
        provider = provider_factory([script.text("Here are ", "some WR tips.")])

        events = await self._wire(make_orchestrator(provider), "Find WR prospects near me")

        assert [name for name, _ in events] == ["start", "text", "text", "complete"]
        assert events[-1][1] == {"response": "Here are some WR tips.", "tools_used": []}

    @pytest.mark.asyncio
    async def test_successful_search(self, make_orchestrator, provider_factory, script):
        """Test a message answered after one successful search."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "search_opportunities", {"position": "WR", "date_range": "next_30_days"})),
                script.text("The Elite West Coast Showcase ", "is your best bet."),
            ]
        )

        events = await self._wire(make_orchestrator(provider), "Any WR combines this month?")

        assert [name for name, _ in events] == [
            "start",
            "tool_start",
            "tool_complete",
            "tools_executing",
            "tools_complete",
            "text",
            "text",
            "complete",
        ]
        assert events[1][1] == {"tool": "search_opportunities"}
        assert events[3][1] == {"count": 1}
        assert json.loads(events[4][1]["results"][0]["content"])["count"] == 1
        assert events[-1][1]["tools_used"] == ["search_opportunities"]

    @pytest.mark.asyncio
    async def test_failing_handler_still_completes(self, make_orchestrator, provider_factory, script):
        """Test that a handler raising is reported to the model and the request completes."""
        provider = provider_factory(
            [
                script.tools(("toolu_1", "track_application", TRACK_UNKNOWN_CAMP)),
                script.text("I couldn't find that camp."),
            ]
        )

        events = await self._wire(make_orchestrator(provider), "I applied to camp_999")

        results = dict(events)["tools_complete"]["results"]
        assert results[0]["is_error"] is True
        assert json.loads(results[0]["content"]) == {"error": "Opportunity camp_999 not found"}
        assert events[-1][0] == "complete"
        assert "error" not in [name for name, _ in events]

    @pytest.mark.asyncio
    async def test_unclosed_tool_block_ends_in_error(self, make_orchestrator, provider_factory):
        """Test that a stream cut off inside a tool call ends with an error and no completion."""
        provider = provider_factory(
            [
                [
                    BlockStart(index=0, block_type="tool_use", tool_id="toolu_1", tool_name="search_opportunities"),
                    BlockDelta(index=0, partial_json='{"position": "W'),
                ]
            ]
        )

        events = await self._wire(make_orchestrator(provider), "Any WR combines?")

        names = [name for name, _ in events]
        assert names[0] == "start"
        assert names[-1] == "error"
        assert "complete" not in names
        assert "Stream ended inside tool call block" in events[-1][1]["message"]
