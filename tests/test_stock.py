import pytest

from inventory.stock import (
    StockStatus, format_certifications, parse_certifications, recommend_restock, stock_status,
)


@pytest.mark.parametrize("on_hand,msl,max_level,expected", [
    (0, 5, None, StockStatus.OUT_OF_STOCK),
    (5, 5, None, StockStatus.LOW_STOCK),
    (6, 5, None, StockStatus.IN_STOCK),
    (50, 5, 50, StockStatus.OVERSTOCK),
    (49, 5, 50, StockStatus.IN_STOCK),
    (0, 0, 0, StockStatus.OUT_OF_STOCK),
])
def test_stock_status(on_hand, msl, max_level, expected):
    assert stock_status(on_hand, msl, max_level) is expected


def test_recommend_restock():
    assert recommend_restock(30, 10) == 24
    assert recommend_restock(11, 10) == 2
    assert recommend_restock(10, 10) == 0
    assert recommend_restock(3, 10) == 0


def test_certifications_round_trip():
    certs = ["ISO 9001", "CE", "RoHS"]
    assert parse_certifications(format_certifications(certs)) == certs
    assert parse_certifications("  ISO 9001 ,CE,, RoHS  ") == certs
    assert parse_certifications(None) == []
    assert parse_certifications(["  a ", ""]) == ["a"]
