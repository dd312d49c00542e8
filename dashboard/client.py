"""HTTP client used by the brand and admin dashboards.

Every response is decoded through the service schemas and the client fails
closed: an unexpected payload raises MalformedResponseError instead of being
replaced with an empty list. Mutations return the server's answer only;
callers refetch lists afterwards.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import requests
from pydantic import TypeAdapter, ValidationError

from dashboard.credentials import CredentialProvider
from dashboard.errors import ApiResponseError, MalformedResponseError, NetworkError
from inventory.schemas import LocationOut, PartOut, SupplierOut
from network.schemas import BulkUploadOut
from shipping.labels import label_filename
from shipping.schemas import AwbRegeneration, ShipmentDeleted, ShipmentOut
from shipping.status import Bucket, ShipmentStats, filter_shipments, shipment_stats

logger = logging.getLogger(__name__)

_shipment_list = TypeAdapter(List[ShipmentOut])


@dataclass
class ShipmentBoard:
    shipments: List[ShipmentOut]
    stats: ShipmentStats
    bucket: Bucket
    selected: List[ShipmentOut]


def _error_message(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or r.reason or "request failed"
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


class BackofficeClient:
    def __init__(self, base_url: str, credentials: Optional[CredentialProvider] = None,
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        token = self.credentials.get_token() if self.credentials else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise NetworkError(f"{method} {path} failed: {e}") from e
        if not r.ok:
            message = _error_message(r)
            logger.error("%s %s returned %s: %s", method, url, r.status_code, message)
            raise ApiResponseError(r.status_code, message)
        return r

    def _json(self, r: requests.Response) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response from {r.url} is not JSON") from e

    def _decode(self, schema, data: Any):
        adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Unexpected response shape: {e.error_count()} errors") from e

    # ---- shipments ----

    def list_shipments(self, brand_id: Optional[str] = None, user_id: Optional[str] = None,
                       role: Optional[str] = None) -> List[ShipmentOut]:
        params = {}
        if brand_id:
            params["brandId"] = brand_id
        elif user_id and role:
            params["userId"] = user_id
            params["role"] = role
        data = self._json(self._request("GET", "/shipments", params=params))
        if isinstance(data, dict) and "shipments" in data:
            data = data["shipments"]
        if not isinstance(data, list):
            raise MalformedResponseError(f"Expected a shipment list, got {type(data).__name__}")
        return self._decode(_shipment_list, data)

    def shipment_board(self, bucket="all", **filters) -> ShipmentBoard:
        shipments = self.list_shipments(**filters)
        bucket = Bucket(bucket)
        return ShipmentBoard(
            shipments=shipments,
            stats=shipment_stats(shipments),
            bucket=bucket,
            selected=filter_shipments(shipments, bucket),
        )

    def update_shipment(self, shipment_id: str, **changes) -> ShipmentOut:
        r = self._request("PUT", f"/shipments/{shipment_id}", json=changes)
        return self._decode(ShipmentOut, self._json(r))

    def delete_shipment(self, shipment_id: str) -> ShipmentDeleted:
        r = self._request("DELETE", f"/shipments/{shipment_id}")
        return self._decode(ShipmentDeleted, self._json(r))

    def regenerate_awb(self, shipment_id: str) -> AwbRegeneration:
        r = self._request("POST", f"/shipments/{shipment_id}/regenerate-awb")
        return self._decode(AwbRegeneration, self._json(r))

    def download_label(self, shipment_id: str, box_id: str, awb_number: str) -> Tuple[bytes, str]:
        r = self._request("GET", f"/shipments/{shipment_id}/boxes/{box_id}/label.pdf")
        if not r.content.startswith(b"%PDF"):
            raise MalformedResponseError("Label response is not a PDF")
        return r.content, label_filename(awb_number)

    # ---- inventory ----

    def list_parts(self, brand_id: Optional[str] = None) -> List[PartOut]:
        params = {"brandId": brand_id} if brand_id else {}
        return self._decode(List[PartOut], self._json(self._request("GET", "/parts", params=params)))

    def list_locations(self, brand_id: str) -> List[LocationOut]:
        r = self._request("GET", "/brand/inventory/locations", params={"brandId": brand_id})
        return self._decode(List[LocationOut], self._json(r))

    def create_location(self, **fields) -> LocationOut:
        r = self._request("POST", "/brand/inventory/locations", json=fields)
        return self._decode(LocationOut, self._json(r))

    def list_suppliers(self, brand_id: str) -> List[SupplierOut]:
        r = self._request("GET", "/brand/inventory/suppliers", params={"brandId": brand_id})
        return self._decode(List[SupplierOut], self._json(r))

    def create_supplier(self, **fields) -> SupplierOut:
        r = self._request("POST", "/brand/inventory/suppliers", json=fields)
        return self._decode(SupplierOut, self._json(r))

    def update_supplier(self, supplier_id: str, **changes) -> SupplierOut:
        r = self._request("PUT", f"/brand/inventory/suppliers/{supplier_id}", json=changes)
        return self._decode(SupplierOut, self._json(r))

    # ---- authorized network ----

    def bulk_authorize(self, brand_id: str, rows: List[dict]) -> BulkUploadOut:
        r = self._request(
            "POST", "/brand/authorized-network/bulk-upload", json={"brandId": brand_id, "csvData": rows}
        )
        return self._decode(BulkUploadOut, self._json(r))
