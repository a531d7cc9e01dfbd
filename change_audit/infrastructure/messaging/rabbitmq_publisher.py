# change_audit/infrastructure/messaging/rabbitmq_publisher.py

from typing import Optional

import aio_pika

from change_audit.config.settings import get_settings


class RabbitMQPublisher:
    """EventPublisher over a durable RabbitMQ topic exchange. Routing key is the event topic."""

    def __init__(
        self,
        url: Optional[str] = None,
        exchange_name: Optional[str] = None,
    ):
        settings = get_settings()
        self._url = url or settings.rabbitmq_url
        self._exchange_name = exchange_name or settings.domain_events_exchange
        self._connection = None
        self._channel = None
        self._exchange = None

    async def connect(self):
        if not self._url:
            raise ValueError("rabbitmq_url is not configured")
        self._connection = await aio_pika.connect_robust(self._url)
        self._channel = await self._connection.channel()
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )

    async def publish(self, topic: str, payload: str) -> None:
        if not self._exchange:
            await self.connect()

        msg = aio_pika.Message(
            body=payload.encode(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            headers={"event_name": topic},
        )

        await self._exchange.publish(msg, routing_key=topic)

    async def close(self):
        if self._connection is not None:
            await self._connection.close()
        self._connection = None
        self._channel = None
        self._exchange = None
