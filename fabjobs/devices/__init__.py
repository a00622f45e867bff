"""
Device Registry.

- DeviceConfig: persisted numeric configuration
- Device: live handle exposing the device command port
- DeviceRegistry: id -> handle mapping, initialization, discovery
"""

from .config import DeviceConfig, NULL_PORT, default_device_config
from .device import Device, DeviceDriver
from .discovery import DiscoveryStrategy, load_discovery_strategies
from .registry import DeviceRegistry

__all__ = [
    "DeviceConfig",
    "NULL_PORT",
    "default_device_config",
    "Device",
    "DeviceDriver",
    "DiscoveryStrategy",
    "load_discovery_strategies",
    "DeviceRegistry",
]
