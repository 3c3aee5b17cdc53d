"""Serialization of outgoing UI events, sticky replay, and incoming commands."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from contracts.ui_protocol import STICKY_EVENT_ORDER, STICKY_EVENT_TYPES


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and timestamp for websocket delivery."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


def parse_command_message(raw: str | bytes) -> Optional[str]:
    """Return the command line carried by a client message, or None if malformed.

    Clients send `{"command": "start", "args": ["Classic Tabata"]}`; args are
    optional and joined onto the command with spaces.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    command = payload.get("command")
    if not isinstance(command, str) or not command.strip():
        return None

    args = payload.get("args", [])
    if isinstance(args, (str, int)):
        args = [args]
    if not isinstance(args, list):
        return None
    parts = [command.strip()] + [str(arg).strip() for arg in args if str(arg).strip()]
    return " ".join(parts)


class StickyEventStore:
    """Thread-safe cache of the latest event per type, replayed to new clients."""
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def forget(self, *event_types: str) -> None:
        with self._lock:
            for event_type in event_types:
                self._events.pop(event_type, None)

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in STICKY_EVENT_ORDER if key in self._events]
