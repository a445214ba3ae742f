"""Milestone notifications for an external UI (popup, CLI prompt, dashboard)."""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from formpilot.log import get_logger

log = get_logger(__name__)


class Milestone(str, Enum):
    FLOW_STARTED = "FLOW_STARTED"
    LISTING_CAPTURED = "LISTING_CAPTURED"
    STOP_POINT_REACHED = "STOP_POINT_REACHED"
    CONFIRM_SUBMIT = "CONFIRM_SUBMIT"
    SUBMITTED = "SUBMITTED"
    FLOW_STOPPED = "FLOW_STOPPED"
    FLOW_FINISHED = "FLOW_FINISHED"


Subscriber = Callable[[Milestone, dict[str, Any]], None]


class MessageChannel:
    """Fire-and-forget fan-out; no subscriber reply is needed for the flow to continue."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self.history: list[tuple[Milestone, dict[str, Any]]] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def emit(self, milestone: Milestone, **payload: Any) -> None:
        self.history.append((milestone, payload))
        log.info("→ %s %s", milestone.value, _summary(payload))
        for callback in list(self._subscribers):
            try:
                callback(milestone, payload)
            except Exception as exc:
                log.warning("Subscriber %r failed on %s: %s", callback, milestone.value, exc)

    def emitted(self, milestone: Milestone) -> list[dict[str, Any]]:
        return [p for m, p in self.history if m == milestone]


def _summary(payload: dict[str, Any]) -> str:
    parts = []
    for key, value in payload.items():
        text = str(value)
        parts.append(f"{key}={text[:60]}{'…' if len(text) > 60 else ''}")
    return " ".join(parts)
