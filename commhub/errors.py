"""
Exception taxonomy for the communication hub.

Configuration errors are raised to the caller. Routing misses never are:
they fall back to direct delivery and only show up in the debug log.
"""

from __future__ import annotations

from typing import Any


class CommHubError(Exception):
    """Base class for all hub and router errors."""


class InvalidModuleError(CommHubError, ValueError):
    """Raised when a module registration is malformed."""

    def __init__(self, message: str, target: Any = None, event: str | None = None):
        self.target = target
        self.event = event
        super().__init__(message)


class NotARouterError(CommHubError, TypeError):
    """Raised when an object lacking the router contract is attached to a hub."""

    def __init__(self, candidate: Any):
        self.candidate = candidate
        super().__init__(f"not a router: {type(candidate).__name__}")


class UnknownModuleError(CommHubError, LookupError):
    """Raised when deregistering a target the hub has no registration for."""

    def __init__(self, target: Any):
        self.target = target
        super().__init__(f"no registration found for module {target!r}")


class RouteNotFoundError(CommHubError, KeyError):
    """Raised when toggling or removing a route that was never configured."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(event)

    def __str__(self) -> str:
        return f"no route configured for event '{self.event}'"


class InvalidActionError(CommHubError, TypeError):
    """Raised when a route action is not callable."""

    def __init__(self, event: str, action: Any):
        self.event = event
        self.action = action
        super().__init__(f"action for event '{event}' is not callable: {action!r}")
