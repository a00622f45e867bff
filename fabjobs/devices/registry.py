"""
Device Registry.

Owns the authoritative device id -> Device mapping.

Initialization:
1. load persisted device records
2. synthesize and persist the default placeholder record if there are none
3. build a live handle per record
4. run every discovery strategy in the background

The registry is usable as soon as step 3 is done; discovered devices show up
as strategies register them.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import ValidationError

from fabjobs.jobs.errors import DeviceNotFoundError
from fabjobs.jobs.ports import DeviceStore

from .config import DeviceConfig, default_device_config
from .device import Device
from .discovery import DiscoveryStrategy, load_discovery_strategies


logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Live device handles keyed by connection identity."""

    def __init__(
        self,
        store: DeviceStore,
        strategies: Optional[list[DiscoveryStrategy]] = None,
        settings=None,
    ):
        """
        Args:
            store: Persisted device configuration
            strategies: Discovery strategies to run; None loads the plugin package
            settings: Application Settings handed to strategies via the registry
        """
        self.store = store
        self.settings = settings
        self._strategies = strategies
        self._devices: dict[str, Device] = {}
        self._discovery_tasks: set[asyncio.Task] = set()
        self._close_tasks: set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Load persisted devices and start discovery. Never raises."""
        try:
            records = await asyncio.to_thread(self.store.find_all_device_records)

            if not records:
                default = default_device_config().model_dump()
                await asyncio.to_thread(self.store.create_device_record, default)
                logger.info("No persisted devices, default device record created")
                records = await asyncio.to_thread(self.store.find_all_device_records)

            for record in records:
                try:
                    config = DeviceConfig.model_validate(record)
                except ValidationError as e:
                    logger.error(f"Skipping invalid device record {record.get('id')}: {e}")
                    continue
                self.register(Device(config))

            self.setup_discovery()
            logger.info(f"Device registry initialized with {len(self._devices)} devices")
        except Exception as e:
            logger.error(f"Device registry initialization error: {e}")

    def setup_discovery(self) -> None:
        """Launch every discovery strategy without waiting for it."""
        strategies = self._strategies
        if strategies is None:
            strategies = load_discovery_strategies()

        for strategy in strategies:
            task = asyncio.get_running_loop().create_task(self._run_strategy(strategy))
            self._discovery_tasks.add(task)
            task.add_done_callback(self._discovery_tasks.discard)

    async def _run_strategy(self, strategy: DiscoveryStrategy) -> None:
        try:
            await strategy.initialize(self)
            logger.info(f"{strategy.name} discovery initialized")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{strategy.name} discovery error: {e}")

    async def wait_for_discovery(self) -> None:
        """Wait until all discovery runs started so far have finished."""
        if self._discovery_tasks:
            await asyncio.gather(*list(self._discovery_tasks), return_exceptions=True)

    # =========================================================================
    # Mapping
    # =========================================================================

    def register(self, device: Device) -> Optional[Device]:
        """
        Insert or replace the handle for device.id. A replaced handle is closed
        in the background.

        Returns:
            The replaced handle, if any
        """
        previous = self._devices.get(device.id)
        self._devices[device.id] = device
        if previous is not None and previous is not device:
            logger.info(f"Device {device.id} re-registered, previous handle replaced")
            self._close_replaced(previous)
        else:
            logger.info(f"Device {device.id} registered ({device.name})")
        return previous

    def _close_replaced(self, device: Device) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Device {device.id} replaced outside the event loop, handle left open")
            return
        task = loop.create_task(device.close())
        self._close_tasks.add(task)
        task.add_done_callback(self._close_tasks.discard)

    def unregister(self, device_id: str) -> Optional[Device]:
        device = self._devices.pop(device_id, None)
        if device is not None:
            logger.info(f"Device {device_id} unregistered")
        return device

    def get(self, device_id: str) -> Device:
        try:
            return self._devices[device_id]
        except KeyError:
            raise DeviceNotFoundError(device_id) from None

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def get_devices(self) -> Mapping[str, dict]:
        """Read-only snapshot of device projections keyed by id."""
        return MappingProxyType(
            {device_id: device.get_device() for device_id, device in self._devices.items()}
        )

    async def shutdown(self) -> None:
        """Stop discovery and close every device handle."""
        tasks = list(self._discovery_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._close_tasks:
            await asyncio.gather(*list(self._close_tasks), return_exceptions=True)

        for device in list(self._devices.values()):
            await device.close()
        logger.info("Device registry shut down")
