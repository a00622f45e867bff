"""
Discovery strategy plugins.

Every module in this package that defines a concrete DiscoveryStrategy
subclass is picked up by load_discovery_strategies(). A strategy detects
devices of one connection class and registers them back into the registry.
"""

import importlib
import inspect
import logging
import pkgutil
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fabjobs.devices.registry import DeviceRegistry


logger = logging.getLogger(__name__)


class DiscoveryStrategy(ABC):
    """Base class for device discovery plugins."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def initialize(self, registry: "DeviceRegistry") -> None:
        """
        Start detecting devices and register them into the registry.

        Invoked once per strategy at registry startup. Long-running detection
        (hotplug watching, network scanning) stays inside this coroutine.
        """
        ...


def load_discovery_strategies(package: str = __name__) -> list[DiscoveryStrategy]:
    """
    Instantiate every strategy found in a plugin package.

    Modules that fail to import or strategies that fail to construct are
    logged and skipped.
    """
    pkg = importlib.import_module(package)
    strategies: list[DiscoveryStrategy] = []

    for module_info in sorted(pkgutil.iter_modules(pkg.__path__), key=lambda m: m.name):
        module_name = f"{package}.{module_info.name}"
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            logger.error(f"Discovery module {module_name} failed to import: {e}")
            continue

        for _, obj in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(obj, DiscoveryStrategy)
                and obj.__module__ == module.__name__
                and not inspect.isabstract(obj)
            ):
                try:
                    strategies.append(obj())
                except Exception as e:
                    logger.error(f"Discovery strategy {obj.__name__} failed to construct: {e}")

    return strategies
