from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractRobustConnection

from todo_api.events.models import TaskStatusChangedEvent

logger = logging.getLogger(__name__)


class EventPublisher(ABC):
    """Broadcasts task notifications to every subscriber."""

    @abstractmethod
    async def publish_status_changed(self, task_id: int, new_status: str) -> None: ...

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None


class RabbitMQEventPublisher(EventPublisher):
    """
    Publishes to a durable fanout exchange.

    The channel runs without publisher confirms: a publish returns once the
    frame is written, nothing is retried, and a broker error propagates.
    """

    def __init__(
        self,
        url: str,
        *,
        exchange_name: str = "task_events",
        routing_key: str = "task.status.changed",
    ) -> None:
        self._url = url
        self._exchange_name = exchange_name
        # Fanout exchanges ignore it; kept for consumers that log it.
        self._routing_key = routing_key
        self._connection: AbstractRobustConnection | None = None
        self._channel: AbstractChannel | None = None
        self._exchange: AbstractExchange | None = None
        self._connect_lock = asyncio.Lock()

    async def connect(self) -> None:
        if self._exchange is not None:
            return

        async with self._connect_lock:
            if self._exchange is not None:
                return

            self._connection = await aio_pika.connect_robust(self._url)
            self._channel = await self._connection.channel(publisher_confirms=False)
            self._exchange = await self._channel.declare_exchange(
                self._exchange_name,
                aio_pika.ExchangeType.FANOUT,
                durable=True,
            )
            logger.info(
                "Declared event exchange", extra={"exchange": self._exchange_name}
            )

    async def publish_status_changed(self, task_id: int, new_status: str) -> None:
        await self.connect()

        event = TaskStatusChangedEvent(task_id=task_id, new_status=new_status)
        message = aio_pika.Message(
            body=event.to_json(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        await self._exchange.publish(message, routing_key=self._routing_key)
        logger.info(
            "Published task status change",
            extra={"task_id": task_id, "new_status": new_status},
        )

    async def close(self) -> None:
        if self._channel is not None and not self._channel.is_closed:
            await self._channel.close()
        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()
        self._exchange = None
        self._channel = None
        self._connection = None
        logger.info("RabbitMQ connection closed")
