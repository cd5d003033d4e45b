"""
Event interceptors.

An interceptor binds exactly one registered module to exactly one event name.
It delivers payloads to the module's handler, through the hub's router when
one is attached and directly otherwise.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from commhub.routing.completion import Completion
from commhub.utils import generate_uid

if TYPE_CHECKING:
    from commhub.hub.hub import CommunicationHub, ModuleRegistration

# Receives None after a successful handler call, or the handler's exception
DeliveryCallback = Callable[[BaseException | None], None]


class EventInterceptor:
    """Delivers one event to one module handler."""

    def __init__(self, hub: CommunicationHub, registration: ModuleRegistration, event: str):
        self.id = generate_uid("eiid_")
        self.event = event
        self.registration = registration
        self.handler_name = registration.handlers[event]
        self.removed = False
        self._hub = hub

    @property
    def module_id(self) -> str:
        return self.registration.id

    def deliver(self, payload: Any = None, on_delivered: DeliveryCallback | None = None) -> None:
        """
        Deliver a payload to the module handler.

        With a router attached, the router decides the final payload and calls
        back into the handler. Without one, or when the router fails before
        completing, the handler gets the original payload directly.

        Args:
            payload: Payload broadcast with the event
            on_delivered: Optional callback told about the handler outcome.
                When given, handler errors are passed to it instead of raised.
        """
        router = self._hub.router
        if router is None:
            self._trace("router_not_attached")
            self._finish(payload, on_delivered)
            return

        completion = Completion(
            lambda altered: self._finish(payload if altered is None else altered, on_delivered),
            self.event,
        )

        try:
            router.route(self.event, payload, completion)
        except Exception:
            if completion.fired:
                raise
            self._hub.logger.warning(
                "router_failed_fallback",
                event_name=self.event,
                interceptor_id=self.id,
                exc_info=True,
            )
            completion()

    def _finish(self, payload: Any, on_delivered: DeliveryCallback | None) -> None:
        if on_delivered is None:
            self._invoke(payload)
            return

        try:
            self._invoke(payload)
        except Exception as exc:
            on_delivered(exc)
            return
        on_delivered(None)

    def _invoke(self, payload: Any) -> None:
        handler = getattr(self.registration.target, self.handler_name)
        handler(self.event, payload)

    def _trace(self, message: str) -> None:
        if self._hub.debug:
            self._hub.logger.debug(
                message,
                event_name=self.event,
                interceptor_id=self.id,
                module_id=self.module_id,
            )

    def __repr__(self) -> str:
        return f"EventInterceptor(id={self.id!r}, event={self.event!r}, module_id={self.module_id!r})"
