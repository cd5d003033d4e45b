"""Dependency injection container for the communication hub.

Provides centralized configuration and wiring of hubs and routers.
There is no process-wide hub: every container builds its own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar

from commhub.hub import CommunicationHub
from commhub.routing import EventRouter

T = TypeVar("T")

ENV_PREFIX = "COMMHUB_"
TRUE_VALUES = ("1", "true", "yes")


@dataclass
class HubContext:
    """Hub configuration."""

    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False
    hub_log_prefix: str = "[CommunicationHub]"
    router_log_prefix: str = "[EventRouter]"

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> HubContext:
        """Load configuration from an env file and environment variables.

        Process environment variables override values from the file.

        Args:
            env_file: Optional ``KEY=value`` file

        Returns:
            HubContext instance
        """
        values = cls._load_env_file(env_file) if env_file is not None else {}
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                values[key] = value

        defaults = cls()
        return cls(
            debug=cls._as_bool(values.get("COMMHUB_DEBUG"), defaults.debug),
            log_level=values.get("COMMHUB_LOG_LEVEL", defaults.log_level).upper(),
            json_logs=cls._as_bool(values.get("COMMHUB_LOG_JSON"), defaults.json_logs),
            hub_log_prefix=values.get("COMMHUB_HUB_PREFIX", defaults.hub_log_prefix),
            router_log_prefix=values.get("COMMHUB_ROUTER_PREFIX", defaults.router_log_prefix),
        )

    @staticmethod
    def _as_bool(value: str | None, default: bool) -> bool:
        if value is None:
            return default
        return value.strip().lower() in TRUE_VALUES

    @staticmethod
    def _load_env_file(env_file: Path) -> dict[str, str]:
        """Load a ``KEY=value`` env file."""
        if not env_file.exists():
            return {}

        values: dict[str, str] = {}
        for line in env_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[7:]
            if "=" in line:
                key, value = line.split("=", 1)
                values[key.strip()] = value.strip().strip('"').strip("'")

        return values


class Container:
    """Dependency injection container.

    Usage:
        container = Container(HubContext.from_env())
        container.setup_defaults()
        hub = container.get(CommunicationHub)
    """

    def __init__(self, context: HubContext | None = None):
        """Initialize container with hub context.

        Args:
            context: Hub configuration (defaults if omitted)
        """
        self.context = context or HubContext()
        self._singletons: dict[type, Any] = {}
        self._factories: dict[type, Callable[[], Any]] = {}

    def register(self, interface: type[T], factory: Callable[[], T]) -> None:
        """Register a factory for a type.

        Args:
            interface: Type to register factory for
            factory: Factory callable that creates instances
        """
        self._factories[interface] = factory

    def register_singleton(self, interface: type[T], instance: T) -> None:
        """Register a singleton instance."""
        self._singletons[interface] = instance

    def get(self, interface: type[T]) -> T:
        """Get instance of a type.

        Raises:
            ValueError: If no factory registered for type
        """
        if interface in self._singletons:
            return self._singletons[interface]

        if interface in self._factories:
            instance = self._factories[interface]()
            self._singletons[interface] = instance
            return instance

        raise ValueError(f"No factory registered for {interface}")

    def has(self, interface: type) -> bool:
        return interface in self._singletons or interface in self._factories

    def setup_defaults(self) -> None:
        """Register factories for the router and a hub with that router attached."""
        self.register(
            EventRouter,
            lambda: EventRouter(
                debug=self.context.debug,
                log_prefix=self.context.router_log_prefix,
            ),
        )

        self.register(
            CommunicationHub,
            lambda: CommunicationHub(
                router=self.get(EventRouter),
                debug=self.context.debug,
                log_prefix=self.context.hub_log_prefix,
            ),
        )

    def reset(self) -> None:
        """Reset built hubs and routers and drop all singletons (useful for testing)."""
        for instance in self._singletons.values():
            if isinstance(instance, (CommunicationHub, EventRouter)):
                instance.reset()
        self._singletons.clear()


def create_hub(context: HubContext | None = None, *, with_router: bool = True) -> CommunicationHub:
    """Build a fresh hub, optionally with a new router attached.

    Args:
        context: Hub configuration (defaults if omitted)
        with_router: Attach a new EventRouter

    Returns:
        New CommunicationHub
    """
    context = context or HubContext()
    router = None
    if with_router:
        router = EventRouter(debug=context.debug, log_prefix=context.router_log_prefix)
    return CommunicationHub(router=router, debug=context.debug, log_prefix=context.hub_log_prefix)
