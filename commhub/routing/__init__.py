"""
Event routing module.

Provides per-event interception of payloads before they reach handlers.
"""

from __future__ import annotations

from .completion import Completion
from .router import Action, EventRouter, RouteEntry, RouterProtocol

__all__ = [
    "Action",
    "Completion",
    "EventRouter",
    "RouteEntry",
    "RouterProtocol",
]
