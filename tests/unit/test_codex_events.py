from __future__ import annotations

import json

from agentbase.codex.events import TurnCollector, decode_events, strip_ansi


def test_strip_ansi_removes_escape_sequences() -> None:
    text = "\u001b[32mHello\u001b[0m"
    assert strip_ansi(text) == "Hello"


def test_decode_events_skips_log_lines() -> None:
    lines = [
        "2025-01-01T00:00:00Z INFO starting",
        '\u001b[2m{"type":"thread.started","thread_id":"th-1"}\u001b[0m',
        "{not json",
        "",
        '["a list"]',
        '{"type":"turn.completed","usage":{"input_tokens":3}}',
    ]

    events = decode_events(lines)

    assert [event["type"] for event in events] == ["thread.started", "turn.completed"]


def test_turn_collector_folds_a_successful_turn() -> None:
    events = [
        {"type": "thread.started", "thread_id": "th-9"},
        {"type": "turn.started"},
        {"type": "item.completed", "item": {"id": "i0", "type": "command_execution", "command": "ls"}},
        {"type": "item.completed", "item": {"id": "i1", "type": "agent_message", "text": "first"}},
        {"type": "item.completed", "item": {"id": "i2", "type": "agent_message", "text": "done"}},
        {"type": "turn.completed", "usage": {"input_tokens": 10, "output_tokens": 4}},
    ]

    collector = TurnCollector().feed_all(events)

    assert collector.thread_id == "th-9"
    assert collector.final_response == "done"
    assert len(collector.items) == 3
    assert collector.usage == {"input_tokens": 10, "output_tokens": 4}
    assert collector.completed
    assert collector.error is None


def test_turn_collector_records_failures() -> None:
    collector = TurnCollector()
    collector.feed({"type": "turn.failed", "error": {"message": "sandbox denied"}})
    assert collector.error == "sandbox denied"
    assert not collector.completed

    collector = TurnCollector()
    collector.feed({"type": "error", "message": "stream disconnected"})
    assert collector.error == "stream disconnected"


def test_decode_then_collect_from_raw_stdout() -> None:
    stdout = "\n".join(
        json.dumps(event)
        for event in (
            {"type": "thread.started", "thread_id": "abc"},
            {"type": "item.completed", "item": {"type": "agent_message", "text": "ok"}},
            {"type": "turn.completed", "usage": {}},
        )
    )

    collector = TurnCollector().feed_all(decode_events(stdout.splitlines()))

    assert collector.thread_id == "abc"
    assert collector.final_response == "ok"
