"""
Communication hub module.

Provides module registration and event fan-out through per-event interceptors.
"""

from __future__ import annotations

from .hub import CommunicationHub, ModuleRegistration
from .interceptor import EventInterceptor

__all__ = [
    "CommunicationHub",
    "EventInterceptor",
    "ModuleRegistration",
]
