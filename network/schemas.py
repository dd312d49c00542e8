from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from common.schemas import CamelModel

ROLE_TYPES = ("SERVICE_CENTER", "DISTRIBUTOR")


class MemberIn(CamelModel):
    brand_id: str
    user_id: str = Field(..., min_length=1, examples=["service@example.com"])
    role_type: str = Field(..., examples=["SERVICE_CENTER"])


class MemberOut(CamelModel):
    id: str
    brand_id: str
    user_id: str
    role_type: str
    status: str
    created_at: datetime


# bulk upload rows keep the snake_case CSV column names on the wire
class BulkRow(BaseModel):
    user_id: Optional[str] = None
    role_type: Optional[str] = None
    row_number: int


class BulkUploadIn(CamelModel):
    brand_id: str
    csv_data: List[BulkRow]


class BulkRowResult(BaseModel):
    success: bool
    user_id: str
    role_type: str
    row_number: int
    message: str


class BulkSummary(BaseModel):
    total: int
    success: int
    failure: int


class BulkUploadOut(BaseModel):
    summary: BulkSummary
    results: List[BulkRowResult]
