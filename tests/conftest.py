"""Shared fixtures: every service runs against its own in-memory database."""
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

os.environ["DB_URL"] = "sqlite://"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("COURIER_URL", None)

from fastapi.testclient import TestClient  # noqa: E402


def _fresh(module):
    module.Base.metadata.drop_all(module.engine)
    module.Base.metadata.create_all(module.engine)
    return TestClient(module.app)


@pytest.fixture
def shipping_app():
    import shipping.app as module
    return module


@pytest.fixture
def shipping_client(shipping_app):
    return _fresh(shipping_app)


@pytest.fixture
def inventory_app():
    import inventory.app as module
    return module


@pytest.fixture
def inventory_client(inventory_app):
    return _fresh(inventory_app)


@pytest.fixture
def network_client():
    import network.app as module
    return _fresh(module)
