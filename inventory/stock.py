"""Stock level rules shared by the inventory routes and the event consumer."""
import math
from enum import Enum
from typing import Iterable, List, Optional


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    OVERSTOCK = "overstock"
    IN_STOCK = "in_stock"


def stock_status(on_hand: int, min_stock_level: int, max_stock_level: Optional[int] = None) -> StockStatus:
    if on_hand <= 0:
        return StockStatus.OUT_OF_STOCK
    if on_hand <= min_stock_level:
        return StockStatus.LOW_STOCK
    if max_stock_level and on_hand >= max_stock_level:
        return StockStatus.OVERSTOCK
    return StockStatus.IN_STOCK


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


APPROVAL_ACTIONS = {
    "approve": ApprovalStatus.APPROVED,
    "reject": ApprovalStatus.REJECTED,
    "review": ApprovalStatus.UNDER_REVIEW,
}

RESTOCK_SAFETY_BUFFER = 0.2
CRITICAL_RESTOCK_QUANTITY = 100


def recommend_restock(projected_demand: int, min_stock_level: int) -> int:
    """Units to reorder so projected demand is covered, plus a 20% buffer.

    Zero when demand does not exceed the minimum stock level.
    """
    shortfall = projected_demand - min_stock_level
    if shortfall <= 0:
        return 0
    return shortfall + math.ceil(shortfall * RESTOCK_SAFETY_BUFFER)


def parse_certifications(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [c.strip() for c in value if c and c.strip()]


def format_certifications(certifications: Iterable[str]) -> str:
    return ", ".join(certifications)
