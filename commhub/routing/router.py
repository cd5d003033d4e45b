"""
Event router for intercepting events before they reach their handlers.

Provides:
- Per-event actions run against the payload before delivery
- Pass-through delivery for unmapped or disabled events
- Enable/disable of a route without dropping its action
- Continuation style actions ``action(payload, complete)``
- Coroutine actions ``async def action(payload)`` returning a replacement

Example:
    router = EventRouter()

    def save(data, done):
        data["saved"] = db.save(data)
        done(data)

    router.set_routes({"jump": save})
    router.toggle_route("jump", False)  # deliver untouched until re-enabled
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from commhub.errors import InvalidActionError, RouteNotFoundError
from commhub.logging_config import get_component_logger
from commhub.routing.completion import Completion

# Continuation action: (payload, complete) -> None
# Coroutine action: async (payload) -> replacement payload or None
Action = Callable[[Any, Callable[..., None]], None] | Callable[[Any], Awaitable[Any]]

DEFAULT_LOG_PREFIX = "[EventRouter]"


def _is_coroutine_action(action: Any) -> bool:
    """True for async functions, partials of them and objects with an async __call__."""
    if inspect.iscoroutinefunction(action):
        return True
    return inspect.iscoroutinefunction(getattr(type(action), "__call__", None))


@runtime_checkable
class RouterProtocol(Protocol):
    """Capability contract a hub requires from an attached router."""

    def route(self, event: str, payload: Any, complete: Callable[..., None]) -> None: ...

    def set_routes(self, routes: Mapping[str, Any]) -> None: ...

    def toggle_route(self, event: str, enabled: bool) -> None: ...

    def reset(self) -> None: ...


@dataclass
class RouteEntry:
    """A configured route."""

    action: Action
    enabled: bool = True
    is_async: bool = False


# =============================================================================
# Event Router
# =============================================================================


class EventRouter:
    """
    Maps event names to actions and runs them during delivery.

    The router never raises on the delivery path: a missing route, a disabled
    route or an action that fails before completing all hand the original
    payload to ``complete``.
    """

    def __init__(
        self,
        routes: Mapping[str, Any] | None = None,
        *,
        debug: bool = False,
        log_prefix: str = DEFAULT_LOG_PREFIX,
    ):
        """
        Initialize event router.

        Args:
            routes: Optional initial event -> action mapping
            debug: Emit operational debug logs
            log_prefix: Component prefix bound to every log line
        """
        self.debug = debug
        self._routes: dict[str, RouteEntry] = {}
        self._tasks: set[asyncio.Task] = set()
        self._logger = get_component_logger(__name__, log_prefix)

        if routes:
            self.set_routes(routes)

    def _trace(self, message: str, **kwargs: Any) -> None:
        if self.debug:
            self._logger.debug(message, **kwargs)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @staticmethod
    def _make_entry(event: str, config: Any) -> RouteEntry:
        if isinstance(config, tuple):
            action, enabled = config
        else:
            action, enabled = config, True

        if not callable(action):
            raise InvalidActionError(event, action)

        return RouteEntry(
            action=action,
            enabled=bool(enabled),
            is_async=_is_coroutine_action(action),
        )

    def set_routes(self, routes: Mapping[str, Any]) -> None:
        """
        Replace the entire action map.

        Args:
            routes: Mapping of event name to an action, or to an
                ``(action, enabled)`` pair
        """
        entries = {event: self._make_entry(event, config) for event, config in routes.items()}
        self._routes = entries
        self._trace("routes_configured", events=sorted(entries))

    def add_route(self, event: str, action: Action, enabled: bool = True) -> None:
        """Add or replace the action for a single event."""
        self._routes[event] = self._make_entry(event, (action, enabled))
        self._trace("route_added", event_name=event, enabled=enabled)

    def remove_route(self, event: str) -> None:
        """Remove the action for a single event."""
        if event not in self._routes:
            raise RouteNotFoundError(event)
        del self._routes[event]
        self._trace("route_removed", event_name=event)

    def toggle_route(self, event: str, enabled: bool) -> None:
        """
        Enable or disable an existing route.

        Raises:
            RouteNotFoundError: If no action is mapped for the event
        """
        entry = self._routes.get(event)
        if entry is None:
            raise RouteNotFoundError(event)
        entry.enabled = bool(enabled)
        self._trace("route_toggled", event_name=event, enabled=entry.enabled)

    def enable_route(self, event: str) -> None:
        self.toggle_route(event, True)

    def disable_route(self, event: str) -> None:
        self.toggle_route(event, False)

    def has_route(self, event: str) -> bool:
        return event in self._routes

    def is_enabled(self, event: str) -> bool:
        entry = self._routes.get(event)
        if entry is None:
            raise RouteNotFoundError(event)
        return entry.enabled

    def get_routes(self) -> dict[str, bool]:
        """Snapshot of configured events and their enabled flags."""
        return {event: entry.enabled for event, entry in self._routes.items()}

    def reset(self) -> None:
        """Clear every route. All events then pass through untouched."""
        self._routes = {}
        self._trace("routes_reset")

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    def route(self, event: str, payload: Any, complete: Callable[..., None]) -> None:
        """
        Run the action mapped for an event, then hand the payload on.

        ``complete`` always receives a payload: the replacement given by the
        action, or the original one when the action kept it or when there is
        nothing to run.

        Args:
            event: Event name
            payload: Payload broadcast with the event
            complete: Continuation receiving the final payload
        """
        entry = self._routes.get(event)
        if entry is None:
            self._trace("route_not_found", event_name=event)
            complete(payload)
            return

        if not entry.enabled:
            self._trace("route_disabled", event_name=event)
            complete(payload)
            return

        completion = Completion(
            lambda altered: complete(payload if altered is None else altered),
            event,
        )

        if entry.is_async:
            self._schedule(event, entry.action, payload, completion)
            return

        try:
            entry.action(payload, completion)
        except Exception:
            # Once completion fired the error belongs to the handler.
            if completion.fired:
                raise
            self._logger.warning("route_action_failed", event_name=event, exc_info=True)
            completion()

    def _schedule(
        self,
        event: str,
        action: Callable[[Any], Awaitable[Any]],
        payload: Any,
        completion: Completion,
    ) -> None:
        """Run a coroutine action on the running loop, or to completion if none runs."""
        runner = self._run_action(event, action, payload, completion)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._run_blocking(runner)
            return

        task = loop.create_task(runner, name=f"route:{event}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _run_blocking(self, runner: Awaitable[None]) -> None:
        """
        Drive a private loop until the action and every route it triggered finish.

        Handlers may emit further events while the loop runs; their coroutine
        actions land on this loop and are drained before it closes.
        """
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(runner)
            while True:
                scheduled = [task for task in self._tasks if task.get_loop() is loop]
                if not scheduled:
                    break
                loop.run_until_complete(asyncio.gather(*scheduled, return_exceptions=True))
        finally:
            leftover = [task for task in self._tasks if task.get_loop() is loop]
            for task in leftover:
                task.cancel()
            if leftover:
                loop.run_until_complete(asyncio.gather(*leftover, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def _run_action(
        self,
        event: str,
        action: Callable[[Any], Awaitable[Any]],
        payload: Any,
        completion: Completion,
    ) -> None:
        try:
            altered = await action(payload)
        except Exception:
            self._logger.warning("route_action_failed", event_name=event, exc_info=True)
            altered = None
        completion(altered)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            # The route never completed, so its handler was not called.
            self._logger.warning("route_task_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            # Nobody awaits a deferred delivery, so the handler error ends here.
            self._logger.error("route_task_failed", task=task.get_name(), exc_info=exc)

    @property
    def pending(self) -> int:
        """Number of coroutine actions still running."""
        return len(self._tasks)

    async def join(self) -> None:
        """Wait for every outstanding coroutine action to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
