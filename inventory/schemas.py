from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from common.schemas import CamelModel
from inventory.stock import parse_certifications

LOCATION_TYPE = "^(WAREHOUSE|STORE|PRODUCTION|QUARANTINE|TRANSIT)$"
SUPPLIER_TYPE = "^(MANUFACTURER|DISTRIBUTOR|WHOLESALER|RETAILER|SERVICE_PROVIDER)$"


class PartIn(CamelModel):
    brand_id: str = Field(..., examples=["brand-1"])
    code: str = Field(..., min_length=1, examples=["SCR-001"])
    name: str = Field(..., min_length=1, examples=["Screen assembly"])
    part_number: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(0.0, ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    min_stock_level: int = Field(0, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_qty: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class PartUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    part_number: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_qty: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PartOut(CamelModel):
    id: str
    brand_id: str
    code: str
    name: str
    part_number: Optional[str] = None
    category: Optional[str] = None
    price: float
    cost_price: Optional[float] = None
    weight: Optional[float] = None
    min_stock_level: int
    max_stock_level: Optional[int] = None
    reorder_point: Optional[int] = None
    reorder_qty: Optional[int] = None
    description: Optional[str] = None
    approval_status: str
    is_active: bool
    created_at: datetime


class PartApprovalOut(PartOut):
    usage_count: int = 0


class ApprovalAction(CamelModel):
    part_id: Optional[str] = None
    action: Optional[str] = None
    reason: Optional[str] = None
    actor: Optional[str] = None


class ApprovalEventOut(CamelModel):
    id: int
    part_id: str
    from_status: str
    to_status: str
    reason: Optional[str] = None
    actor: Optional[str] = None
    created_at: datetime


class LocationIn(CamelModel):
    brand_id: str
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: str = Field("WAREHOUSE", pattern=LOCATION_TYPE)
    zone: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    current_utilization: Optional[int] = Field(None, ge=0)
    address: Optional[str] = None
    manager: Optional[str] = None
    active: bool = True


class LocationUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, pattern=LOCATION_TYPE)
    zone: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    current_utilization: Optional[int] = Field(None, ge=0)
    address: Optional[str] = None
    manager: Optional[str] = None
    active: Optional[bool] = None


class LocationOut(CamelModel):
    id: str
    brand_id: str
    code: str
    name: str
    type: str
    zone: Optional[str] = None
    capacity: Optional[int] = None
    current_utilization: Optional[int] = None
    address: Optional[str] = None
    manager: Optional[str] = None
    active: bool


class _Certified(CamelModel):
    @field_validator("certifications", mode="before", check_fields=False)
    @classmethod
    def split_certifications(cls, v: Any):
        if v is None:
            return v
        return parse_certifications(v)


class SupplierIn(_Certified):
    brand_id: str
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: str = Field("MANUFACTURER", pattern=SUPPLIER_TYPE)
    rating: float = Field(0.0, ge=0, le=5)
    lead_time: int = Field(0, ge=0)
    payment_terms: str = "NET30"
    currency: str = "INR"
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    certifications: List[str] = Field(default_factory=list)
    active: bool = True


class SupplierUpdate(_Certified):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, pattern=SUPPLIER_TYPE)
    rating: Optional[float] = Field(None, ge=0, le=5)
    lead_time: Optional[int] = Field(None, ge=0)
    payment_terms: Optional[str] = None
    currency: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    certifications: Optional[List[str]] = None
    active: Optional[bool] = None


class SupplierOut(CamelModel):
    id: str
    brand_id: str
    code: str
    name: str
    type: str
    rating: float
    lead_time: int
    payment_terms: str
    currency: str
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    certifications: List[str] = Field(default_factory=list)
    active: bool


class InventoryItemIn(CamelModel):
    part_id: str
    location_id: str
    supplier_id: Optional[str] = None
    on_hand_quantity: int = Field(0, ge=0)
    reserved_quantity: int = Field(0, ge=0)
    average_cost: Optional[float] = Field(None, ge=0)


class StockAdjustment(CamelModel):
    quantity: int = Field(..., examples=[-3])
    reason: Optional[str] = Field(None, examples=["Cycle count correction"])


class InventoryItemOut(CamelModel):
    id: str
    part_id: str
    location_id: str
    supplier_id: Optional[str] = None
    on_hand_quantity: int
    available_quantity: int
    reserved_quantity: int
    defective_quantity: int
    in_transit_quantity: int
    average_cost: Optional[float] = None
    last_restocked: Optional[datetime] = None
    last_issued: Optional[datetime] = None
    stock_status: str
    part: PartOut
    location: LocationOut


class InventorySummary(CamelModel):
    total_items: int
    out_of_stock: int
    low_stock: int
    overstock: int
    in_stock: int
    total_value: float


class RestockAlertIn(CamelModel):
    part_id: Optional[str] = None
    district: Optional[str] = None
    forecasted_demand: Optional[int] = Field(None, ge=0)
    available_stock: Optional[int] = Field(None, ge=0)
    recommended_quantity: Optional[int] = Field(None, ge=0)


class RestockAlertOut(CamelModel):
    id: str
    part_id: str
    brand_id: str
    district: str
    forecasted_demand: int
    available_stock: int
    recommended_quantity: int
    status: str
    created_at: datetime
    part: PartOut


class RestockSummary(CamelModel):
    total: int
    critical: int
    pending: int
    approved: int


class RestockAlertList(CamelModel):
    alerts: List[RestockAlertOut]
    summary: RestockSummary


class RestockDecision(CamelModel):
    action: str


class PartForecast(CamelModel):
    part_id: str
    projected_demand: int = Field(..., ge=0)


class RestockGenerateIn(CamelModel):
    brand_id: str
    district: str
    forecasts: List[PartForecast]


class RestockGenerateResult(CamelModel):
    part_id: str
    part_code: Optional[str] = None
    current_msl: Optional[int] = None
    projected_demand: int
    recommended_quantity: int
    action: str  # no_action_needed, already_pending, alert_created, part_not_found
    alert_id: Optional[str] = None
