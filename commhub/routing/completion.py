"""
One-shot completion callbacks handed to route actions.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from commhub.logging_config import get_logger

logger = get_logger(__name__)


class Completion:
    """
    Single-use continuation for a routed event.

    A route action calls it exactly once, either with no argument to keep the
    original payload or with a replacement payload. It may be called right away
    or after the action has finished some deferred work.

    ``fired`` tells whether delivery already started, which lets callers tell
    a failing action (not fired yet) from a failing handler (already fired).
    """

    __slots__ = ("_callback", "_event", "_fired")

    def __init__(self, callback: Callable[[Any], None], event: str):
        self._callback = callback
        self._event = event
        self._fired = False

    @property
    def event(self) -> str:
        return self._event

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self, payload: Any = None) -> None:
        if self._fired:
            logger.warning("route_completed_twice", event_name=self._event)
            return
        self._fired = True
        self._callback(payload)

    def __repr__(self) -> str:
        return f"Completion(event={self._event!r}, fired={self._fired})"
