import json
from unittest.mock import MagicMock

import pytest

from common import events
from common.config import Settings


@pytest.fixture
def settings():
    return Settings(service_name="shipping", db_url="sqlite://", events_enabled=True, rabbitmq_queue="q")


def test_publish_sends_json(settings, monkeypatch):
    connection = MagicMock()
    monkeypatch.setattr(events.pika, "BlockingConnection", MagicMock(return_value=connection))
    assert events.publish_event(settings, {"type": "shipment.created", "shipment": {"id": "s1"}})
    channel = connection.channel.return_value
    channel.queue_declare.assert_called_once_with(queue="q", durable=False)
    kwargs = channel.basic_publish.call_args.kwargs
    assert kwargs["routing_key"] == "q"
    assert json.loads(kwargs["body"])["shipment"]["id"] == "s1"
    connection.close.assert_called_once()


def test_publish_swallows_broker_errors(settings, monkeypatch):
    monkeypatch.setattr(events.pika, "BlockingConnection", MagicMock(side_effect=OSError("refused")))
    assert events.publish_event(settings, {"type": "shipment.deleted"}) is False


def test_disabled_events(settings, monkeypatch):
    settings.events_enabled = False
    connect = MagicMock()
    monkeypatch.setattr(events.pika, "BlockingConnection", connect)
    assert events.publish_event(settings, {"type": "x"}) is False
    assert events.start_consumer(settings, lambda e: None) is None
    connect.assert_not_called()
