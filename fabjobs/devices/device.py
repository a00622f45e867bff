"""
Live device handle.

A Device pairs persisted configuration with an optional driver (the
protocol/firmware layer, supplied from outside). It exposes the command port
the job engine calls; every failure surfaces as DeviceCommandError.
"""

import logging
from typing import Any, Optional, Protocol

from fabjobs.jobs.errors import DeviceCommandError

from .config import DeviceConfig


logger = logging.getLogger(__name__)


class DeviceDriver(Protocol):
    """Protocol layer of a connected device."""

    async def start_job(self, job: Any) -> None:
        ...

    async def pause(self, params: Optional[dict] = None) -> None:
        ...

    async def resume(self, params: Optional[dict] = None) -> None:
        ...

    async def cancel(self, params: Optional[dict] = None) -> None:
        ...

    async def close(self) -> None:
        ...


class Device:
    """A device handle keyed by its connection identity (port)."""

    def __init__(self, config: DeviceConfig, driver: Optional[DeviceDriver] = None):
        self.config = config
        self.driver = driver

    @property
    def id(self) -> str:
        return self.config.port

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def connected(self) -> bool:
        return self.driver is not None

    def get_device(self) -> dict:
        """Serializable view, without the live driver."""
        return {
            "id": self.id,
            "name": self.name,
            "port": self.config.port,
            "connected": self.connected,
            "config": self.config.model_dump(),
        }

    async def start(self, job: Any) -> None:
        await self._call("start", lambda driver: driver.start_job(job))

    async def pause(self, job: Any, params: Optional[dict] = None) -> None:
        await self._call("pause", lambda driver: driver.pause(params))

    async def resume(self, job: Any, params: Optional[dict] = None) -> None:
        await self._call("resume", lambda driver: driver.resume(params))

    async def cancel(self, job: Any, params: Optional[dict] = None) -> None:
        await self._call("cancel", lambda driver: driver.cancel(params))

    async def close(self) -> None:
        if self.driver is None:
            return
        try:
            await self.driver.close()
        except Exception as e:
            logger.error(f"Device {self.id} close error: {e}")
        self.driver = None

    async def _call(self, operation: str, invoke) -> None:
        if self.driver is None:
            raise DeviceCommandError(self.id, operation, "no driver attached")
        try:
            await invoke(self.driver)
        except DeviceCommandError:
            raise
        except Exception as e:
            raise DeviceCommandError(self.id, operation, str(e)) from e
