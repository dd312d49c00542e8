"""Shipment and box status taxonomy for the brand dashboard.

Status strings are free text coming from the courier and from admins, so
every lookup here is case-insensitive and total: an unknown status still gets
a badge and simply matches no bucket.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet

from common.schemas import CamelModel


@dataclass(frozen=True)
class StatusBadge:
    color: str
    icon: str
    label: str


def _color(name: str) -> str:
    return f"bg-{name}-100 text-{name}-800"


# lower-case status -> (color, icon, label); label None means capitalize the raw value
_BADGES = {
    "initiated": (_color("blue"), "clock", None),
    "confirmed": (_color("blue"), "check-circle", None),
    "pending": (_color("gray"), "alert-circle", None),
    "pickup_awaited": (_color("orange"), "clock", "Pickup Awaited"),
    "pickup_scheduled": (_color("orange"), "calendar", "Pickup Scheduled"),
    "pickup_completed": (_color("green"), "check-circle", "Pickup Completed"),
    "dispatched": (_color("green"), "truck", None),
    "held_up": (_color("red"), "alert-circle", "Held Up"),
    "in_transit": (_color("yellow"), "truck", "In Transit"),
    "out_for_delivery": (_color("purple"), "truck", "Out For Delivery"),
    "delivered": (_color("emerald"), "check-circle", "Delivered"),
    "undelivered": (_color("red"), "x-circle", "Undelivered"),
    "rto": (_color("red"), "rotate-ccw", "RTO"),
    "cancelled": (_color("gray"), "x-circle", "Cancelled"),
}
UNKNOWN_COLOR = _color("gray")
UNKNOWN_ICON = "x-circle"


def _capitalize(status: str) -> str:
    return status[:1].upper() + status[1:].lower()


def classify_status(status) -> StatusBadge:
    raw = status or ""
    color, icon, label = _BADGES.get(raw.lower(), (UNKNOWN_COLOR, UNKNOWN_ICON, None))
    return StatusBadge(color=color, icon=icon, label=label or _capitalize(raw))


class Bucket(str, Enum):
    ALL = "all"
    PENDING = "pending"
    PICKUP_SCHEDULED = "pickup_scheduled"
    DISPATCHED = "dispatched"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    ISSUES = "issues"


@dataclass(frozen=True)
class BucketRule:
    shipment_statuses: FrozenSet[str]
    box_statuses: FrozenSet[str]
    missing_awb: bool = False


def _rule(shipment, box=None, missing_awb=False) -> BucketRule:
    shipment = frozenset(shipment)
    return BucketRule(shipment, frozenset(box) if box is not None else shipment, missing_awb)


BUCKET_RULES = {
    Bucket.PENDING: _rule({"INITIATED", "PENDING", "PICKUP_AWAITED"}, {"PENDING", "PICKUP_AWAITED"}, missing_awb=True),
    Bucket.PICKUP_SCHEDULED: _rule({"PICKUP_SCHEDULED"}),
    Bucket.DISPATCHED: _rule({"DISPATCHED", "PICKUP_COMPLETED"}),
    Bucket.IN_TRANSIT: _rule({"IN_TRANSIT"}),
    Bucket.OUT_FOR_DELIVERY: _rule({"OUT_FOR_DELIVERY"}),
    Bucket.DELIVERED: _rule({"DELIVERED"}),
    Bucket.ISSUES: _rule({"HELD_UP", "UNDELIVERED", "RTO", "CANCELLED"}),
}

CLOSED_STATUSES = frozenset({"DELIVERED", "CANCELLED"})


def _status(obj) -> str:
    return (getattr(obj, "status", None) or "").upper()


def _boxes(shipment) -> list:
    return list(getattr(shipment, "boxes", None) or [])


def matches_bucket(shipment, bucket) -> bool:
    bucket = Bucket(bucket)
    if bucket is Bucket.ALL:
        return True
    rule = BUCKET_RULES[bucket]
    if _status(shipment) in rule.shipment_statuses:
        return True
    for box in _boxes(shipment):
        if _status(box) in rule.box_statuses:
            return True
        if rule.missing_awb and not getattr(box, "awb_number", None):
            return True
    return False


def filter_shipments(shipments: Any, bucket="all") -> list:
    """Return the shipments that belong to ``bucket``, keeping input order.

    Anything that is not a list or tuple yields an empty list. Raises
    ValueError for an unknown bucket key.
    """
    bucket = Bucket(bucket)
    if not isinstance(shipments, (list, tuple)):
        return []
    return [s for s in shipments if matches_bucket(s, bucket)]


class ShipmentStats(CamelModel):
    total: int = 0
    pending: int = 0
    pickup_scheduled: int = 0
    dispatched: int = 0
    in_transit: int = 0
    out_for_delivery: int = 0
    delivered: int = 0
    issues: int = 0


def shipment_stats(shipments: Any) -> ShipmentStats:
    if not isinstance(shipments, (list, tuple)):
        return ShipmentStats()
    counts = {b.value: len(filter_shipments(shipments, b)) for b in BUCKET_RULES}
    return ShipmentStats(total=len(shipments), **counts)


def can_edit_or_delete(shipment) -> bool:
    return _status(shipment) not in CLOSED_STATUSES


def has_failed_boxes(shipment) -> bool:
    return any(not getattr(b, "awb_number", None) or _status(b) == "PENDING" for b in _boxes(shipment))


class StatusBadgeOut(CamelModel):
    status: str
    color: str
    icon: str
    label: str


def badge_for(status) -> StatusBadgeOut:
    badge = classify_status(status)
    return StatusBadgeOut(status=status or "", color=badge.color, icon=badge.icon, label=badge.label)
