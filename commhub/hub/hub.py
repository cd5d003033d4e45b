"""
Communication hub for indirect communication between modules.

Modules register the events they listen to together with the name of a
handler method. Any other part of the application broadcasts an event with a
payload and every handler registered for it is called as
``handler(event, payload)``.

An optional router sits between broadcast and delivery. It can run actions
against the payload (persist it, enrich it, validate it) and pass either the
original or a replacement payload on to the handler.

Example:
    hub = CommunicationHub()

    class Rabbit:
        def on_jump(self, event, data):
            print(event, data["name"])

    rabbit = Rabbit()
    hub.register_module(rabbit, {"jump": "on_jump"})
    hub.emit("jump", {"name": "Roger"})  # -> jump Roger
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from commhub.errors import InvalidModuleError, NotARouterError, UnknownModuleError
from commhub.hub.interceptor import EventInterceptor
from commhub.logging_config import get_component_logger
from commhub.routing.router import RouterProtocol
from commhub.utils import generate_uid

DEFAULT_LOG_PREFIX = "[CommunicationHub]"


@dataclass
class ModuleRegistration:
    """
    A registered module.

    Attributes:
        id: Registration id, unique per register_module call
        target: Object owning the handler methods
        handlers: Event name -> handler method name
        interceptors: Event name -> interceptor delivering that event
    """

    id: str
    target: Any
    handlers: dict[str, str]
    interceptors: dict[str, EventInterceptor] = field(default_factory=dict)

    @property
    def events(self) -> list[str]:
        return list(self.handlers)


def _settle(future: asyncio.Future, exc: BaseException | None) -> None:
    if future.done():
        return
    if exc is None:
        future.set_result(None)
    else:
        future.set_exception(exc)


# =============================================================================
# Communication Hub
# =============================================================================


class CommunicationHub:
    """
    Registry of modules and fan-out point for broadcast events.

    Interceptors for the same event are dispatched in registration order.
    A route that defers its completion does not hold up the interceptors
    after it.
    """

    def __init__(
        self,
        router: RouterProtocol | None = None,
        *,
        debug: bool = False,
        log_prefix: str = DEFAULT_LOG_PREFIX,
    ):
        """
        Initialize communication hub.

        Args:
            router: Optional router to attach
            debug: Emit operational debug logs
            log_prefix: Component prefix bound to every log line
        """
        self.debug = debug
        self.logger = get_component_logger(__name__, log_prefix)
        self._modules: dict[str, ModuleRegistration] = {}
        self._events: dict[str, list[EventInterceptor]] = {}
        self._router: RouterProtocol | None = None

        if router is not None:
            self.use_router(router)

    def _trace(self, message: str, **kwargs: Any) -> None:
        if self.debug:
            self.logger.debug(message, **kwargs)

    # -------------------------------------------------------------------------
    # Router
    # -------------------------------------------------------------------------

    @property
    def router(self) -> RouterProtocol | None:
        return self._router

    def use_router(self, router: RouterProtocol) -> None:
        """
        Attach a router.

        Raises:
            NotARouterError: If the object lacks the router contract
        """
        if not isinstance(router, RouterProtocol):
            raise NotARouterError(router)
        self._router = router
        self._trace("router_attached", router=type(router).__name__)

    def detach_router(self) -> None:
        """Detach the router. Later broadcasts are delivered directly."""
        self._router = None
        self._trace("router_detached")

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate(target: Any, handlers: Any) -> dict[str, str]:
        if target is None:
            raise InvalidModuleError("module target is required")
        if not isinstance(handlers, Mapping):
            raise InvalidModuleError(
                f"handlers must be a mapping, got {type(handlers).__name__}",
                target=target,
            )

        validated: dict[str, str] = {}
        for event, handler_name in handlers.items():
            if not isinstance(event, str) or not event:
                raise InvalidModuleError(f"invalid event name: {event!r}", target=target)
            if not isinstance(handler_name, str) or not handler_name:
                raise InvalidModuleError(
                    f"handler for '{event}' must be a method name, got {handler_name!r}",
                    target=target,
                    event=event,
                )
            if not callable(getattr(target, handler_name, None)):
                raise InvalidModuleError(
                    f"'{handler_name}' is not a callable member of {type(target).__name__}",
                    target=target,
                    event=event,
                )
            validated[event] = handler_name
        return validated

    def register_module(self, target: Any, handlers: Mapping[str, str]) -> ModuleRegistration:
        """
        Register a module listening on events.

        Creates one interceptor per event. Registering the same target twice
        creates two independent registrations.

        Args:
            target: Object owning the handler methods
            handlers: Event name -> handler method name on ``target``

        Returns:
            The new registration; its ``id`` correlates the module with its
            interceptors

        Raises:
            InvalidModuleError: If target or handlers are malformed
        """
        validated = self._validate(target, handlers)

        registration = ModuleRegistration(
            id=generate_uid("mid_"),
            target=target,
            handlers=validated,
        )
        self._modules[registration.id] = registration

        for event in validated:
            interceptor = EventInterceptor(self, registration, event)
            registration.interceptors[event] = interceptor
            self._events.setdefault(event, []).append(interceptor)
            self._trace(
                "interceptor_created",
                event_name=event,
                interceptor_id=interceptor.id,
                module_id=registration.id,
            )

        self._trace("module_registered", module_id=registration.id, events=registration.events)
        return registration

    def deregister_module(self, target: Any, events: Iterable[str] | str | None = None) -> None:
        """
        Stop delivering events to a module.

        Events the target is not registered for are ignored.

        Args:
            target: Object previously passed to register_module
            events: Events to drop, or None for all of them

        Raises:
            UnknownModuleError: If the target has no registration
        """
        registrations = [reg for reg in self._modules.values() if reg.target is target]
        if not registrations:
            raise UnknownModuleError(target)

        if isinstance(events, str):
            events = [events]
        requested = None if events is None else list(events)

        for registration in registrations:
            names = list(registration.interceptors) if requested is None else requested
            for event in names:
                interceptor = registration.interceptors.pop(event, None)
                if interceptor is None:
                    continue
                registration.handlers.pop(event, None)
                self._unindex(interceptor)

            if not registration.interceptors:
                del self._modules[registration.id]
                self._trace("module_deregistered", module_id=registration.id)

    def _unindex(self, interceptor: EventInterceptor) -> None:
        interceptor.removed = True
        bound = self._events.get(interceptor.event, [])
        if interceptor in bound:
            bound.remove(interceptor)
        if not bound:
            self._events.pop(interceptor.event, None)
        self._trace(
            "interceptor_removed",
            event_name=interceptor.event,
            interceptor_id=interceptor.id,
            module_id=interceptor.module_id,
        )

    def get_registration(self, module_id: str) -> ModuleRegistration | None:
        return self._modules.get(module_id)

    def listeners(self, event: str) -> list[str]:
        """Registration ids bound to an event, in registration order."""
        return [interceptor.module_id for interceptor in self._events.get(event, [])]

    def has_listeners(self, event: str) -> bool:
        return bool(self._events.get(event))

    # -------------------------------------------------------------------------
    # Broadcast
    # -------------------------------------------------------------------------

    def emit(self, event: str, payload: Any = None) -> int:
        """
        Broadcast an event to every module listening on it.

        The same payload object is passed to every interceptor. Broadcasting
        an event nobody listens to is a no-op. A handler error propagates and
        stops delivery to the interceptors after it.

        Args:
            event: Event name
            payload: Data passed through to the handlers

        Returns:
            Number of interceptors dispatched
        """
        dispatched = 0
        for interceptor in list(self._events.get(event, ())):
            if interceptor.removed:
                continue
            interceptor.deliver(payload)
            dispatched += 1
        return dispatched

    broadcast = emit

    async def emit_async(self, event: str, payload: Any = None) -> int:
        """
        Broadcast an event and wait until every handler has been called.

        Deferred routes are awaited too. Every interceptor is dispatched
        before any of them is waited on; the first handler error is raised
        once all deliveries have settled.

        Returns:
            Number of interceptors dispatched
        """
        loop = asyncio.get_running_loop()
        pending: list[asyncio.Future] = []

        for interceptor in list(self._events.get(event, ())):
            if interceptor.removed:
                continue
            future = loop.create_future()
            interceptor.deliver(payload, on_delivered=partial(_settle, future))
            pending.append(future)

        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return len(pending)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Drop every registration and detach the router (useful for testing)."""
        for bound in self._events.values():
            for interceptor in bound:
                interceptor.removed = True
        self._modules.clear()
        self._events.clear()
        self._router = None
        self._trace("hub_reset")

    def get_stats(self) -> dict[str, Any]:
        """Get hub statistics."""
        return {
            "modules": len(self._modules),
            "events": len(self._events),
            "interceptors": sum(len(bound) for bound in self._events.values()),
            "router_attached": self._router is not None,
        }
