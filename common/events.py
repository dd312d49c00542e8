"""RabbitMQ event publishing and consuming for the back-office services."""
import json
import logging
import threading
import time
from typing import Callable

import pika

from common.config import Settings

logger = logging.getLogger(__name__)


def publish_event(settings: Settings, event: dict) -> bool:
    if not settings.events_enabled:
        logger.debug("Events disabled, dropping %s", event.get("type"))
        return False
    try:
        params = pika.URLParameters(settings.rabbitmq_url)
        connection = pika.BlockingConnection(params)
        ch = connection.channel()
        ch.queue_declare(queue=settings.rabbitmq_queue, durable=False)
        ch.basic_publish(exchange="", routing_key=settings.rabbitmq_queue, body=json.dumps(event).encode("utf-8"))
        connection.close()
    except Exception as e:
        # a broker outage never fails the request that produced the event
        logger.warning("Failed to publish %s event: %s", event.get("type"), e)
        return False
    logger.info("Published %s event", event.get("type"))
    return True


def _consume_loop(settings: Settings, handler: Callable[[dict], None], retry_delay: float):
    while True:
        try:
            params = pika.URLParameters(settings.rabbitmq_url)
            connection = pika.BlockingConnection(params)
            ch = connection.channel()
            ch.queue_declare(queue=settings.rabbitmq_queue, durable=False)

            def callback(chx, method, properties, body):
                try:
                    event = json.loads(body.decode("utf-8"))
                    handler(event)
                except Exception:
                    logger.exception("Failed to process event")

            ch.basic_consume(queue=settings.rabbitmq_queue, on_message_callback=callback, auto_ack=True)
            logger.info("[%s] Consumer started on queue %s", settings.service_name, settings.rabbitmq_queue)
            ch.start_consuming()
        except Exception as e:
            logger.warning("Rabbit consumer error: %s. Retrying in %ss...", e, retry_delay)
            time.sleep(retry_delay)


def start_consumer(settings: Settings, handler: Callable[[dict], None], retry_delay: float = 3.0):
    """Run the consumer in a daemon thread; returns None when events are off."""
    if not settings.events_enabled:
        logger.info("Events disabled, consumer not started")
        return None
    t = threading.Thread(target=_consume_loop, args=(settings, handler, retry_delay), daemon=True)
    t.start()
    return t
