"""
RabbitMQ event publisher.

Uses pika in a thread-pool executor so blocking I/O doesn't stall the
asyncio event loop. A connection is opened per publish call.
"""
import asyncio
import json
from functools import partial
from typing import Any

import pika
import pika.exceptions
import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.config import settings
from src.domain.events.domain_events import (
    DomainEvent,
    DraftGeneratedEvent,
    ListingSavedEvent,
)

logger = structlog.get_logger(__name__)

EXCHANGE_NAME = "listing-generator.events"


def event_to_routing_key(event: DomainEvent) -> str:
    if isinstance(event, DraftGeneratedEvent):
        return f"draft.generated.{event.mode.value}"
    if isinstance(event, ListingSavedEvent):
        return "listing.saved"
    return "event.unknown"


def serialise_event(event: DomainEvent) -> str:
    payload: dict[str, Any] = {
        "event_type": event_to_routing_key(event),
        "event_id": str(event.event_id),
        "occurred_at": event.occurred_at.isoformat(),
    }

    if isinstance(event, DraftGeneratedEvent):
        payload.update(
            {
                "mode": event.mode.value,
                "title": event.title,
                "price_min": event.price_min,
                "price_max": event.price_max,
                "used_schema_fallback": event.used_schema_fallback,
            }
        )
    elif isinstance(event, ListingSavedEvent):
        payload.update(
            {
                "listing_id": str(event.listing_id),
                "user_id": event.user_id,
                "title": event.title,
                "has_image": event.has_image,
            }
        )

    return json.dumps(payload, default=str)


def _blocking_publish(rabbitmq_url: str, routing_key: str, body: str) -> None:
    connection = pika.BlockingConnection(pika.URLParameters(rabbitmq_url))
    try:
        channel = connection.channel()
        channel.exchange_declare(exchange=EXCHANGE_NAME, exchange_type="topic", durable=True)
        channel.basic_publish(
            exchange=EXCHANGE_NAME,
            routing_key=routing_key,
            body=body.encode(),
            properties=pika.BasicProperties(
                delivery_mode=pika.DeliveryMode.Persistent,
                content_type="application/json",
            ),
        )
    finally:
        connection.close()


class RabbitMQPublisher(EventPublisher):
    """Publishes domain events to a RabbitMQ topic exchange."""

    def __init__(self, rabbitmq_url: str = settings.rabbitmq_url) -> None:
        self._url = rabbitmq_url

    async def publish(self, event: DomainEvent) -> None:
        routing_key = event_to_routing_key(event)
        body = serialise_event(event)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, partial(_blocking_publish, self._url, routing_key, body))
            logger.debug("event_published", routing_key=routing_key, event_id=str(event.event_id))
        except (pika.exceptions.AMQPError, OSError) as exc:
            # A lost event must not fail the generation request that produced it
            logger.error("failed_to_publish_event", routing_key=routing_key, error=str(exc))
