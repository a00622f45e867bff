"""
Static discovery.

Registers the devices listed in STATIC_DEVICES (port=name pairs). Ports that
already have a handle, e.g. from a persisted record, are left alone. Drivers
for these are attached by whoever opens the connection.
"""

import logging

from fabjobs.devices.config import DeviceConfig
from fabjobs.devices.device import Device

from . import DiscoveryStrategy


logger = logging.getLogger(__name__)


class StaticDiscovery(DiscoveryStrategy):
    """Devices declared in configuration rather than detected."""

    async def initialize(self, registry) -> None:
        settings = registry.settings
        if settings is None or not settings.static_devices:
            return

        for port, name in settings.static_devices:
            if port in registry:
                logger.info(f"Static device {port} already registered, keeping its stored config")
                continue
            registry.register(Device(DeviceConfig(port=port, name=name)))
            logger.info(f"Static device registered: {port} ({name})")
