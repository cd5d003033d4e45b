"""
Communication hub package.

Indirect, event based communication between modules of an application:
- Module registration with per-event handler names
- Broadcast of events with arbitrary payloads
- Optional routing layer intercepting payloads before delivery
"""

from commhub.container import Container, HubContext, create_hub
from commhub.errors import (
    CommHubError,
    InvalidActionError,
    InvalidModuleError,
    NotARouterError,
    RouteNotFoundError,
    UnknownModuleError,
)
from commhub.hub import CommunicationHub, EventInterceptor, ModuleRegistration
from commhub.routing import Completion, EventRouter, RouterProtocol

__version__ = "0.1.0"

__all__ = [
    "CommHubError",
    "CommunicationHub",
    "Completion",
    "Container",
    "EventInterceptor",
    "EventRouter",
    "HubContext",
    "InvalidActionError",
    "InvalidModuleError",
    "ModuleRegistration",
    "NotARouterError",
    "RouteNotFoundError",
    "RouterProtocol",
    "UnknownModuleError",
    "create_hub",
]
