from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from keygate.config import Config
from keygate.core.modules.key.validator import KeyValidator
from keygate.core.modules.session.backend import MongoSessionBackend, SessionBackend
from keygate.utils import Clock, now

if TYPE_CHECKING:
    from keygate.core.modules.connection.service import ConnectionTokenService
    from keygate.core.modules.gate.service import GateService
    from keygate.core.modules.session.service import SessionService


class Service:
    """Base class for services sharing the core context."""

    def __init__(self) -> None:
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    session: SessionService
    connection: ConnectionTokenService
    gate: GateService

    def __init__(self) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters for initialization - the session store must be first
        service_configs = [
            ("session", "keygate.core.modules.session.service", "SessionService"),
            ("connection", "keygate.core.modules.connection.service", "ConnectionTokenService"),
            ("gate", "keygate.core.modules.gate.service", "GateService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class()
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop services in reverse start order."""
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, the key validator, session persistence, and all service instances."""

    config: Config
    clock: Clock
    key_validator: KeyValidator
    session_backend: SessionBackend | None
    services: Services

    def __init__(self, config: Config, clock: Clock = now) -> None:
        """Bind the secret once, open persistence if configured, and auto-register services."""
        self.config = config
        self.clock = clock
        self.key_validator = KeyValidator.from_config(config)
        self.session_backend = MongoSessionBackend(config.database_url) if config.database_url else None
        self.services = Services()
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Start all services on application startup."""
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the session backend on shutdown."""
        await self.services.stop_all()
        if self.session_backend is not None:
            await self.session_backend.close()
