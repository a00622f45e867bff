"""
FabService - wires the job engine and device registry together.

Usage:
    service = FabService.create(load_settings())
    await service.start()
    job = await service.engine.create_job("/dev/ttyACM0", file_id="benchy.gcode")
    await service.engine.process_command(job.uuid, "start")
    ...
    await service.stop()
"""

import logging
from typing import Optional

from .devices import DeviceRegistry, DiscoveryStrategy
from .infra.broadcast import FanoutBroadcaster, InMemoryBroadcaster, WebhookBroadcaster
from .infra.persistence import PersistenceAdapter
from .infra.settings import Settings
from .jobs import JobEngine


logger = logging.getLogger(__name__)


class FabService:
    """Owns the store, broadcaster, device registry and job engine."""

    def __init__(
        self,
        settings: Settings,
        store: PersistenceAdapter,
        registry: DeviceRegistry,
        events: InMemoryBroadcaster,
        engine: JobEngine,
    ):
        """Use FabService.create() for convenient construction."""
        self.settings = settings
        self.store = store
        self.registry = registry
        self.events = events
        self.engine = engine
        self._started = False

    @classmethod
    def create(
        cls,
        settings: Settings,
        strategies: Optional[list[DiscoveryStrategy]] = None,
    ) -> "FabService":
        """
        Build a service with all components wired together.

        Args:
            settings: Application settings
            strategies: Discovery strategies; None loads the plugin package
        """
        store = PersistenceAdapter(settings.db_path)

        events = InMemoryBroadcaster()
        broadcasters = [events]
        if settings.webhook_urls:
            broadcasters.append(
                WebhookBroadcaster(settings.webhook_urls, timeout=settings.broadcast_timeout)
            )

        registry = DeviceRegistry(store, strategies=strategies, settings=settings)
        engine = JobEngine(
            devices=registry,
            store=store,
            broadcaster=FanoutBroadcaster(*broadcasters),
            tick_interval=settings.tick_interval,
        )
        return cls(settings, store, registry, events, engine)

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        await self.registry.initialize()
        self._started = True
        logger.info("FabService started")

    async def stop(self) -> None:
        if not self._started:
            return
        await self.engine.shutdown()
        await self.registry.shutdown()
        self._started = False
        logger.info("FabService stopped")
