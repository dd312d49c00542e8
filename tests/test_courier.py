from types import SimpleNamespace as NS
from unittest.mock import MagicMock

import pytest
import requests

from common.config import Settings
from shipping.courier import CourierError, HttpCourierClient, LocalCourierClient, get_courier_client

SHIPMENT = NS(id="s1", priority="HIGH")
BOX = NS(box_number=2, weight=1.25)


def reply(status, body=None):
    r = MagicMock()
    r.status_code = status
    r.json.return_value = body or {}
    return r


def test_http_generate_awb():
    session = MagicMock()
    session.post.return_value = reply(201, {"awbNumber": "D123"})
    client = HttpCourierClient("http://courier.test/", timeout=3, session=session)
    assert client.generate_awb(SHIPMENT, BOX) == "D123"
    url = session.post.call_args.args[0]
    assert url == "http://courier.test/awb"
    assert session.post.call_args.kwargs["json"]["boxNumber"] == 2
    assert session.post.call_args.kwargs["timeout"] == 3


@pytest.mark.parametrize("outcome", [reply(500), reply(200, {}), requests.Timeout("slow")])
def test_http_generate_awb_failures(outcome):
    session = MagicMock()
    if isinstance(outcome, Exception):
        session.post.side_effect = outcome
    else:
        session.post.return_value = outcome
    with pytest.raises(CourierError):
        HttpCourierClient("http://courier.test", session=session).generate_awb(SHIPMENT, BOX)


def test_http_cancel():
    session = MagicMock()
    session.post.return_value = reply(200)
    HttpCourierClient("http://courier.test", session=session).cancel_awb("D1")
    assert session.post.call_args.args[0] == "http://courier.test/awb/D1/cancel"
    session.post.return_value = reply(404)
    with pytest.raises(CourierError):
        HttpCourierClient("http://courier.test", session=session).cancel_awb("D1")


def test_factory_and_local_awbs():
    local = get_courier_client(Settings(service_name="s", db_url="sqlite://"))
    assert isinstance(local, LocalCourierClient)
    awb = local.generate_awb(SHIPMENT, BOX)
    assert awb.startswith("AWB") and len(awb) == 13
    remote = get_courier_client(Settings(service_name="s", db_url="sqlite://", courier_url="http://c"))
    assert isinstance(remote, HttpCourierClient)
