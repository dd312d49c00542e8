from datetime import datetime
from typing import List, Optional

from pydantic import Field, computed_field, model_validator

from common.schemas import CamelModel
from shipping.status import StatusBadgeOut, badge_for


class BoxPartIn(CamelModel):
    part_id: str = Field(..., examples=["part-123"])
    quantity: int = Field(..., ge=1, examples=[2])


class BoxIn(CamelModel):
    box_number: Optional[int] = Field(None, ge=1, examples=[1])
    weight: float = Field(0.0, ge=0, examples=[1.5])
    box_parts: List[BoxPartIn] = Field(default_factory=list)


class ShipmentIn(CamelModel):
    brand_id: str = Field(..., examples=["brand-1"])
    recipient_type: str = Field("SERVICE_CENTER", pattern="^(SERVICE_CENTER|DISTRIBUTOR)$")
    service_center_id: Optional[str] = None
    distributor_id: Optional[str] = None
    priority: str = Field("MEDIUM", pattern="^(LOW|MEDIUM|HIGH)$")
    boxes: List[BoxIn] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_recipient(self):
        if self.recipient_type == "SERVICE_CENTER" and not self.service_center_id:
            raise ValueError("serviceCenterId is required for SERVICE_CENTER shipments")
        if self.recipient_type == "DISTRIBUTOR" and not self.distributor_id:
            raise ValueError("distributorId is required for DISTRIBUTOR shipments")
        return self


class ShipmentUpdate(CamelModel):
    status: Optional[str] = Field(None, min_length=1, examples=["IN_TRANSIT"])
    priority: Optional[str] = Field(None, pattern="^(LOW|MEDIUM|HIGH)$")


class BoxUpdate(CamelModel):
    status: Optional[str] = Field(None, min_length=1)
    weight: Optional[float] = Field(None, ge=0)


class BoxPartOut(CamelModel):
    id: int
    part_id: str
    quantity: int


class BoxOut(CamelModel):
    id: str
    box_number: int
    awb_number: Optional[str] = None
    status: str
    weight: float
    box_parts: List[BoxPartOut] = Field(default_factory=list)

    @computed_field
    @property
    def badge(self) -> StatusBadgeOut:
        return badge_for(self.status)


class ShipmentOut(CamelModel):
    id: str
    brand_id: str
    service_center_id: Optional[str] = None
    distributor_id: Optional[str] = None
    recipient_type: str
    status: str
    priority: str
    total_weight: float
    created_at: datetime
    boxes: List[BoxOut] = Field(default_factory=list)

    @computed_field
    @property
    def badge(self) -> StatusBadgeOut:
        return badge_for(self.status)


class ShipmentList(CamelModel):
    shipments: List[ShipmentOut]


class AwbResult(CamelModel):
    box_id: str
    box_number: int
    success: bool
    awb_number: Optional[str] = None
    message: str


class AwbSummary(CamelModel):
    total: int
    successful: int
    failed: int


class AwbRegeneration(CamelModel):
    summary: AwbSummary
    results: List[AwbResult]


class ShipmentDeleted(CamelModel):
    message: str
    cancelled_awbs: int


class LabelRequest(CamelModel):
    shipment_id: str


class LabelResult(CamelModel):
    box_id: str
    box_number: int
    awb_number: str
    success: bool
    download_url: Optional[str] = None
    label_size: Optional[int] = None
    error: Optional[str] = None


class LabelBatch(CamelModel):
    summary: AwbSummary
    labels: List[LabelResult]
