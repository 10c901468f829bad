"""
Streaming Orchestrator Tests
============================

Async tests for a streaming session driven against a recording canvas:
- One-shot and char-by-char feeding
- Throttled, coalesced refreshes
- Pause / resume, user stop, transport failure and the idle watchdog
- Empty stream and placeholder handling
- Transient progress and controls nodes

@author lycosa9527
@made_by MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

import asyncio
import itertools

import pytest

from models.common import Side, StreamState
from models.settings import MindmapSettings, StreamingSettings
from services.streaming.exceptions import TransportFailure
from services.streaming.orchestrator import StreamingOrchestrator, open_session

DOCUMENT = "# A\ntext1\n## B\ntext2\n## C\ntext3"


def make_settings(**streaming):
    streaming.setdefault("update_interval", 0.0)
    return MindmapSettings(streaming=StreamingSettings(**streaming))


async def tick(delay=0.01):
    await asyncio.sleep(delay)


def structure(orchestrator):
    rows = []
    for node in orchestrator.section_nodes:
        parent = orchestrator.builder.parent_of(node)
        rows.append((node.header_level, node.header_text, None if parent.is_root else parent.header_text))
    return rows


class TestDocumentFeeding:
    """Test tree structure and canvas output for complete documents."""

    @pytest.mark.asyncio
    async def test_one_shot_document(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())

        assert orchestrator.on_token(DOCUMENT) is True
        assert orchestrator.on_complete(DOCUMENT) is True
        result = await orchestrator.wait()

        assert result.state == StreamState.COMPLETED
        assert result.succeeded
        assert result.text == DOCUMENT
        assert structure(orchestrator) == [(1, "A", None), (2, "B", "A"), (2, "C", "A")]

        a, b, c = result.nodes
        assert all(node.is_materialized for node in result.nodes)
        assert ("remove_node", placeholder.id) in canvas.calls
        assert orchestrator.placeholder is None
        assert {(edge[0], edge[1]) for edge in canvas.edges} == {
            (trigger.id, a.visual_ref.id),
            (a.visual_ref.id, b.visual_ref.id),
            (a.visual_ref.id, c.visual_ref.id),
        }
        assert a.visual_ref.text == "# A\ntext1"
        assert c.visual_ref.text == "## C\ntext3"

    @pytest.mark.asyncio
    async def test_materialized_nodes_do_not_overlap(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        text = "\n".join(f"## Topic {index}\nSome words about topic {index}." for index in range(7))

        result = await orchestrator.render_response(text)

        rects = [node.visual_ref.rect for node in result.nodes] + [trigger.rect]
        for first, second in itertools.combinations(rects, 2):
            assert not first.overlaps(second)

    @pytest.mark.asyncio
    async def test_char_by_char_matches_one_shot(self, canvas, trigger, placeholder):
        one_shot = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        await one_shot.render_response(DOCUMENT)

        other = type(canvas)()
        other_trigger = other.add_node(0, 0, 400, 100)
        other_placeholder = other.add_node(460, 0, 400, 60)
        streamed = StreamingOrchestrator(other, other_trigger, other_placeholder, make_settings())
        for index, char in enumerate(DOCUMENT):
            streamed.on_token(char)
            if index % 3 == 0:
                await tick(0)
        streamed.on_complete()
        result = await streamed.wait()

        assert structure(streamed) == structure(one_shot)
        assert [node.content for node in result.nodes] == [node.content for node in one_shot.section_nodes]
        assert result.metrics.token_count == len(DOCUMENT)

    @pytest.mark.asyncio
    async def test_depth_policy_scenario(self, canvas, trigger, placeholder):
        settings = MindmapSettings(streaming=StreamingSettings(max_depth=1, update_interval=0))
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings)

        result = await orchestrator.render_response("## Intro\nhello\n## Features\n### Detail\nworld")

        intro, features = result.nodes
        assert structure(orchestrator) == [(2, "Intro", None), (2, "Features", None)]
        assert intro.body == "hello"
        assert features.body == "### Detail\nworld"

    @pytest.mark.asyncio
    async def test_empty_stream_only_removes_placeholder(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())

        assert orchestrator.on_complete("") is True
        result = await orchestrator.wait()

        assert result.state == StreamState.COMPLETED
        assert result.nodes == []
        assert canvas.calls == [("remove_node", placeholder.id)]

    @pytest.mark.asyncio
    async def test_preamble_keeps_placeholder_as_root(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("Here you go\n# A\nx")
        await tick()

        a = orchestrator.section_nodes[0]
        assert placeholder.text == "Here you go"
        assert (placeholder.id, a.visual_ref.id) in {(edge[0], edge[1]) for edge in canvas.edges}
        assert ("remove_node", placeholder.id) not in canvas.calls

        orchestrator.cancel()

    @pytest.mark.asyncio
    async def test_auto_split_response(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())

        result = await orchestrator.render_response("- alpha\n- beta\n\n```\ncode\n```", auto_split=True)

        assert [node.header_text for node in result.nodes] == ["📝 Key Points", "💻 Code Block"]
        assert ("remove_node", placeholder.id) in canvas.calls

    @pytest.mark.asyncio
    async def test_refused_edges_do_not_abort_the_stream(self, canvas, trigger, placeholder):
        canvas.fail_connect = True
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())

        result = await orchestrator.render_response(DOCUMENT)

        assert result.state == StreamState.COMPLETED
        assert len(result.nodes) == 3
        assert canvas.edges == []
        assert orchestrator.edges == []


class TestRefreshThrottling:
    """Test coalescing of refreshes within the update interval."""

    @pytest.mark.asyncio
    async def test_tokens_within_interval_share_one_refresh(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings(update_interval=0.2))

        for token in ("# A", "\nsome", " text"):
            orchestrator.on_token(token)
        await tick()
        assert orchestrator.refresh_count == 1

        orchestrator.on_token(" more")
        orchestrator.on_token(" and more")
        await tick(0.05)
        assert orchestrator.refresh_count == 1

        await tick(0.25)
        assert orchestrator.refresh_count == 2
        assert orchestrator.section_nodes[0].content == "# A\nsome text more and more"

        orchestrator.cancel()

    @pytest.mark.asyncio
    async def test_flush_refreshes_immediately(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings(update_interval=5))
        orchestrator.on_token("# A\n")
        await tick()
        orchestrator.on_token("## B\n")

        orchestrator.flush()

        assert [node.header_text for node in orchestrator.section_nodes] == ["A", "B"]
        orchestrator.cancel()

    @pytest.mark.asyncio
    async def test_active_node_carries_streaming_indicator(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("# A\nbody")
        await tick()

        a = orchestrator.section_nodes[0]
        assert a.visual_ref.text == "# A\nbody ●"

        orchestrator.on_token("\n## B\n")
        await tick()
        b = orchestrator.section_nodes[1]
        assert a.visual_ref.text == "# A\nbody"
        assert b.visual_ref.text == "## B ●"

        orchestrator.on_complete()
        await orchestrator.wait()
        assert b.visual_ref.text == "## B"


class TestSessionControls:
    """Test pause, resume and user stop."""

    @pytest.mark.asyncio
    async def test_pause_buffers_and_resume_replays(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("# A\n")
        await tick()

        assert orchestrator.pause() is True
        assert orchestrator.state == StreamState.PAUSED
        assert orchestrator.on_token("## B\n") is True
        await tick()
        assert orchestrator.buffer == "# A\n"
        assert [node.header_text for node in orchestrator.section_nodes] == ["A"]

        assert orchestrator.on_complete("# A\n## B\n") is True
        assert orchestrator.state == StreamState.PAUSED

        assert orchestrator.resume() is True
        result = await orchestrator.wait()
        assert result.state == StreamState.COMPLETED
        assert result.text == "# A\n## B\n"
        assert [node.header_text for node in result.nodes] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_pause_and_resume_rejected_in_wrong_state(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())

        assert orchestrator.pause() is False
        assert orchestrator.resume() is False
        assert orchestrator.state == StreamState.IDLE
        orchestrator.cancel()

    @pytest.mark.asyncio
    async def test_stop_completes_with_accumulated_text(self, canvas, trigger, placeholder):
        settings = make_settings(show_progress=True, enable_controls=True)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings)
        orchestrator.on_token("# A\nbody text")
        await tick()
        progress = orchestrator.indicators.progress
        controls = orchestrator.indicators.controls
        assert progress is not None and controls is not None

        assert orchestrator.stop() is True
        result = await orchestrator.wait()

        assert result.state == StreamState.COMPLETED
        assert result.cancelled is True
        a = result.nodes[0]
        assert a.visual_ref.text == "# A\nbody text\n\n⏹️ Streaming stopped by user"
        assert ("remove_node", progress.id) in canvas.calls
        assert ("remove_node", controls.id) in canvas.calls
        assert orchestrator.on_token("late") is False

    @pytest.mark.asyncio
    async def test_controls_node_reflects_pause(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings(enable_controls=True))
        orchestrator.on_token("# A\n")
        controls = orchestrator.indicators.controls

        orchestrator.pause()
        assert "(Paused)" in controls.text
        assert "▶️ Resume" in controls.text

        orchestrator.resume()
        assert "(Streaming...)" in controls.text
        orchestrator.cancel()

    @pytest.mark.asyncio
    async def test_stop_while_paused_keeps_buffered_tokens(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("# A\nfirst ")
        await tick()
        orchestrator.pause()
        orchestrator.on_token("arrived while paused")

        assert orchestrator.cancel() is True
        result = await orchestrator.wait()

        assert result.text == "# A\nfirst arrived while paused"
        assert result.metrics.token_count == 2
        assert result.nodes[0].visual_ref.text == (
            "# A\nfirst arrived while paused\n\n⏹️ Streaming stopped by user"
        )

    @pytest.mark.asyncio
    async def test_transport_budget_comes_from_settings(self, canvas, trigger, placeholder):
        settings = make_settings(retry_attempts=5, timeout=2.5)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings)

        assert orchestrator.retry_attempts == 5
        assert orchestrator.timeout == 2.5
        orchestrator.cancel()


class TestFailureAndWatchdog:
    """Test transport failure and forced completion."""

    @pytest.mark.asyncio
    async def test_transport_failure_marks_active_node(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("# A\npartial")
        await tick()

        assert orchestrator.on_error(RuntimeError("boom")) is True
        result = await orchestrator.wait()

        assert result.state == StreamState.FAILED
        assert isinstance(result.error, TransportFailure)
        assert result.error.message == "boom"
        assert result.error.context == {"cause": "RuntimeError"}
        assert result.metrics.error_count == 1
        assert result.nodes[0].visual_ref.text == "❌ Streaming failed: boom"
        assert canvas.notices == ["Streaming failed: boom"]
        assert orchestrator.on_complete() is False

    @pytest.mark.asyncio
    async def test_failure_before_first_token_marks_placeholder(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())

        orchestrator.on_error(TimeoutError("timed out"))
        result = await orchestrator.wait()

        assert result.state == StreamState.FAILED
        assert placeholder.text == "❌ Streaming failed: timed out"
        assert ("remove_node", placeholder.id) not in canvas.calls

    @pytest.mark.asyncio
    async def test_failure_while_paused(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("# A\n")
        orchestrator.pause()

        assert orchestrator.on_error(TransportFailure(message="gave up")) is True
        result = await orchestrator.wait()
        assert result.state == StreamState.FAILED
        assert result.error.message == "gave up"

    @pytest.mark.asyncio
    async def test_watchdog_forces_completion(self, canvas, trigger, placeholder):
        settings = make_settings(timeout=0.05, watchdog_buffer=0.0)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings)
        orchestrator.on_token("# A\nbody")
        await tick()
        assert not orchestrator.done

        result = await asyncio.wait_for(orchestrator.wait(), timeout=1.0)

        assert result.state == StreamState.COMPLETED
        assert result.nodes[0].visual_ref.text == "# A\nbody"

    @pytest.mark.asyncio
    async def test_watchdog_while_paused_keeps_buffered_tokens(self, canvas, trigger, placeholder):
        settings = make_settings(timeout=0.05, watchdog_buffer=0.0)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings)
        orchestrator.on_token("# A\nfirst ")
        await tick()
        orchestrator.pause()
        orchestrator.on_token("arrived while paused")

        result = await asyncio.wait_for(orchestrator.wait(), timeout=1.0)

        assert result.state == StreamState.COMPLETED
        assert result.text == "# A\nfirst arrived while paused"
        assert result.nodes[0].visual_ref.text == "# A\nfirst arrived while paused"

    @pytest.mark.asyncio
    async def test_failure_while_paused_keeps_buffered_tokens(self, canvas, trigger, placeholder):
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        orchestrator.on_token("# A\n")
        orchestrator.pause()
        orchestrator.on_token("## B\n")

        orchestrator.on_error(RuntimeError("reset"))
        result = await orchestrator.wait()

        assert result.text == "# A\n## B\n"
        assert [node.header_text for node in result.nodes] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_watchdog_rearmed_by_tokens(self, canvas, trigger, placeholder):
        settings = make_settings(timeout=0.1, watchdog_buffer=0.0)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings)
        for _ in range(4):
            orchestrator.on_token("word ")
            await tick(0.05)

        assert orchestrator.state == StreamState.STREAMING
        orchestrator.cancel()


class TestStreamDrivers:
    """Test the async iterable driver and session bootstrap."""

    @pytest.mark.asyncio
    async def test_run_stream(self, canvas, trigger, placeholder):
        async def chunks():
            for chunk in ("# A\n", "alpha\n", "# B\n", "beta"):
                yield chunk
                await asyncio.sleep(0)

        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        result = await orchestrator.run_stream(chunks())

        assert result.state == StreamState.COMPLETED
        assert [node.header_text for node in result.nodes] == ["A", "B"]
        assert result.metrics.token_count == 4
        assert result.metrics.char_count == len("# A\nalpha\n# B\nbeta")

    @pytest.mark.asyncio
    async def test_run_stream_failure(self, canvas, trigger, placeholder):
        async def chunks():
            yield "# A\n"
            raise ConnectionError("connection reset")

        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings())
        result = await orchestrator.run_stream(chunks())

        assert result.state == StreamState.FAILED
        assert result.error.message == "connection reset"

    @pytest.mark.asyncio
    async def test_open_session_creates_connected_placeholder(self, canvas, trigger):
        orchestrator = open_session(canvas, trigger, make_settings(), model_name="gpt-4o")

        placeholder = orchestrator.placeholder
        assert placeholder.text == "Calling AI (gpt-4o)..."
        assert placeholder.x == trigger.x + trigger.width + 60
        assert canvas.edges == [(trigger.id, placeholder.id, Side.RIGHT, Side.LEFT)]

        orchestrator.on_complete("")
        await orchestrator.wait()
        assert canvas.edges == []
        assert orchestrator.edges == []


class TestProgressIndicator:
    """Test the transient progress node."""

    @pytest.mark.asyncio
    async def test_progress_updates_and_delayed_removal(self, canvas, trigger, placeholder, monkeypatch):
        monkeypatch.setattr("services.streaming.session.PROGRESS_REMOVE_DELAY", 0.05)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings(show_progress=True))
        orchestrator.on_token("# A\n")
        await tick()

        progress = orchestrator.indicators.progress
        assert progress.text.startswith("📊 Streaming: 1 tokens | 4 chars")
        assert progress.text.endswith("| 1 nodes")

        orchestrator.on_complete()
        await orchestrator.wait()
        assert ("remove_node", progress.id) not in canvas.calls

        await tick(0.1)
        assert ("remove_node", progress.id) in canvas.calls

    @pytest.mark.asyncio
    async def test_failure_text_on_progress_node(self, canvas, trigger, placeholder, monkeypatch):
        monkeypatch.setattr("services.streaming.session.FAILED_PROGRESS_REMOVE_DELAY", 0.05)
        orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, make_settings(show_progress=True))
        orchestrator.on_token("# A\n")
        progress = orchestrator.indicators.progress

        orchestrator.on_error(RuntimeError("quota exceeded"))
        assert progress.text == "❌ Streaming failed: quota exceeded"

        await tick(0.1)
        assert ("remove_node", progress.id) in canvas.calls
