"""
Broadcast of job events to subscribers.

Delivery is at-most-once and best effort: nothing is retried and no
acknowledgment is collected. Failures are logged, never raised to the job.

- InMemoryBroadcaster: in-process fan-out to asyncio queues
- WebhookBroadcaster: HTTP POST to every configured URL (httpx)
- FanoutBroadcaster: publish to several broadcasters at once
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

import httpx

from fabjobs import __version__


logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 5.0
DEFAULT_QUEUE_SIZE = 100


class InMemoryBroadcaster:
    """Fan-out to asyncio queues registered by in-process subscribers."""

    def __init__(self):
        self._subscribers: list[tuple[Optional[str], asyncio.Queue]] = []

    def subscribe(self, topic: Optional[str] = None, maxsize: int = DEFAULT_QUEUE_SIZE) -> asyncio.Queue:
        """
        Register a subscriber.

        Args:
            topic: Only receive this topic (None for all topics)
            maxsize: Queue bound; events for a full queue are dropped

        Returns:
            Queue receiving (topic, message) tuples
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append((topic, queue))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers = [(t, q) for t, q in self._subscribers if q is not queue]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, topic: str, message: Mapping[str, Any]) -> None:
        for subscribed_topic, queue in list(self._subscribers):
            if subscribed_topic is not None and subscribed_topic != topic:
                continue
            try:
                queue.put_nowait((topic, dict(message)))
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full, dropping {topic} event")


class WebhookBroadcaster:
    """POST every event to a fixed list of webhook URLs, one attempt each."""

    def __init__(self, urls: list[str], timeout: float = WEBHOOK_TIMEOUT_SECONDS):
        self.urls = list(urls)
        self.timeout = timeout

    def build_payload(self, topic: str, message: Mapping[str, Any]) -> dict:
        payload = {"topic": topic, **message}
        payload["timestamp"] = datetime.now().isoformat()
        return payload

    async def publish(self, topic: str, message: Mapping[str, Any]) -> None:
        if not self.urls:
            return

        payload = self.build_payload(topic, message)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            await asyncio.gather(
                *(self._post(client, url, topic, payload) for url in self.urls)
            )

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        topic: str,
        payload: dict,
    ) -> bool:
        try:
            response = await client.post(
                url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": f"fabjobs/{__version__}",
                    "X-Fabjobs-Topic": topic,
                },
            )
            if 200 <= response.status_code < 300:
                logger.debug(f"Broadcast {topic} delivered to {url}")
                return True

            logger.warning(
                f"Broadcast {topic} to {url} failed: "
                f"HTTP {response.status_code}: {response.text[:200]}"
            )

        except httpx.TimeoutException:
            logger.warning(f"Broadcast {topic} to {url} timed out after {self.timeout}s")

        except httpx.RequestError as e:
            logger.warning(f"Broadcast {topic} to {url} request error: {e}")

        return False


class FanoutBroadcaster:
    """Publish to several broadcasters; one failing does not block the others."""

    def __init__(self, *broadcasters):
        self.broadcasters = list(broadcasters)

    async def publish(self, topic: str, message: Mapping[str, Any]) -> None:
        for broadcaster in self.broadcasters:
            try:
                await broadcaster.publish(topic, message)
            except Exception as e:
                logger.error(f"Broadcaster {type(broadcaster).__name__} failed on {topic}: {e}")
