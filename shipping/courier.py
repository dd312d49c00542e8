"""Courier clients that mint and cancel AWB numbers."""
import logging
from uuid import uuid4

import requests

from common.config import Settings

logger = logging.getLogger(__name__)


class CourierError(Exception):
    pass


class CourierClient:
    def generate_awb(self, shipment, box) -> str:
        raise NotImplementedError

    def cancel_awb(self, awb_number: str) -> None:
        raise NotImplementedError


class LocalCourierClient(CourierClient):
    """Mints AWB numbers locally; used when no courier endpoint is configured."""

    def generate_awb(self, shipment, box) -> str:
        return f"AWB{uuid4().hex[:10].upper()}"

    def cancel_awb(self, awb_number: str) -> None:
        logger.info("Cancelled local AWB %s", awb_number)


class HttpCourierClient(CourierClient):
    def __init__(self, base_url: str, timeout: float = 5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate_awb(self, shipment, box) -> str:
        payload = {
            "shipmentId": shipment.id,
            "boxNumber": box.box_number,
            "weight": box.weight or 0.5,
            "pieces": 1,
            "priority": shipment.priority,
        }
        try:
            r = self.session.post(f"{self.base_url}/awb", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise CourierError(f"Courier unreachable: {e}") from e
        if r.status_code not in (200, 201):
            raise CourierError(f"Courier rejected AWB request for box {box.box_number}: {r.status_code}")
        awb = r.json().get("awbNumber")
        if not awb:
            raise CourierError(f"Courier returned no AWB for box {box.box_number}")
        return awb

    def cancel_awb(self, awb_number: str) -> None:
        try:
            r = self.session.post(f"{self.base_url}/awb/{awb_number}/cancel", timeout=self.timeout)
        except requests.RequestException as e:
            raise CourierError(f"Courier unreachable: {e}") from e
        if r.status_code != 200:
            raise CourierError(f"Courier refused to cancel AWB {awb_number}: {r.status_code}")


def get_courier_client(settings: Settings) -> CourierClient:
    if settings.courier_url:
        return HttpCourierClient(settings.courier_url, timeout=settings.courier_timeout)
    return LocalCourierClient()
