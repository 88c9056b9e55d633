"""Decoding of the Codex CLI ``--json`` event stream."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

ANSI_ESCAPE_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def strip_ansi(value: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return ANSI_ESCAPE_RE.sub("", value)


def decode_events(lines: Iterable[str]) -> list[dict[str, Any]]:
    """Parse newline-delimited JSON events, skipping non-JSON log lines."""
    events: list[dict[str, Any]] = []
    for raw in lines:
        candidate = strip_ansi(raw).strip()
        if not candidate or not candidate.startswith("{"):
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            logger.debug("Skipping undecodable Codex output line: %s", candidate[:200])
            continue
        if isinstance(parsed, dict):
            events.append(parsed)
    return events


@dataclass(slots=True)
class TurnCollector:
    """Fold Codex events into the state of one turn.

    Recognized events: ``thread.started`` (``thread_id``), ``item.completed``
    (``item``), ``turn.completed`` (``usage``), ``turn.failed`` (``error``) and
    top-level ``error`` (``message``).
    """

    thread_id: Optional[str] = None
    items: list[dict[str, Any]] = field(default_factory=list)
    final_response: str = ""
    usage: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    completed: bool = False

    def feed(self, event: dict[str, Any]) -> None:
        event_type = event.get("type")

        if event_type == "thread.started":
            candidate = event.get("thread_id")
            if isinstance(candidate, str) and candidate:
                self.thread_id = candidate
        elif event_type == "item.completed":
            item = event.get("item")
            if isinstance(item, dict):
                self.items.append(item)
                if item.get("type") == "agent_message" and isinstance(item.get("text"), str):
                    self.final_response = item["text"]
        elif event_type == "turn.completed":
            self.completed = True
            usage = event.get("usage")
            if isinstance(usage, dict):
                self.usage = dict(usage)
        elif event_type == "turn.failed":
            error = event.get("error")
            if isinstance(error, dict):
                self.error = str(error.get("message") or error)
            else:
                self.error = str(error or "turn failed")
        elif event_type == "error":
            self.error = str(event.get("message") or "Codex reported an error")

    def feed_all(self, events: Iterable[dict[str, Any]]) -> "TurnCollector":
        for event in events:
            self.feed(event)
        return self


__all__ = ["TurnCollector", "decode_events", "strip_ansi"]
