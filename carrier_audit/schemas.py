# schemas.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from carrier_audit.models import ShipmentAuditData

SeverityLevel = Literal['LOW', 'MEDIUM', 'HIGH', 'CRITICAL']


class ShipmentAuditRequest(BaseModel):
    tracking_number: str = Field(..., description="Unique carrier tracking ID")
    carrier: str = Field(..., description="FEDEX, UPS, USPS, DHL or OTHER")
    service_type: str
    quoted_rate: float = Field(..., gt=0, description="Rate quoted at booking, dollars")
    actual_rate: float = Field(..., ge=0, description="Rate billed by the carrier, dollars")
    weight: float = Field(..., ge=0, description="Billed weight, lbs")
    declared_weight: Optional[float] = Field(None, ge=0)
    dimensions: Optional[str] = Field(None, description="LxWxH as billed")
    declared_dimensions: Optional[str] = Field(None, description="LxWxH as declared")
    zone: Optional[str] = None
    ship_date: datetime

    def to_audit_data(self) -> ShipmentAuditData:
        return ShipmentAuditData(**self.model_dump())


class AuditResultResponse(BaseModel):
    tracking_number: str
    carrier: str
    discrepancy_type: Literal['OVERCHARGE', 'UNDERCHARGE', 'NONE']
    quoted_rate: float
    actual_rate: float
    difference: float
    difference_percent: float
    reason: str
    severity: SeverityLevel
    auto_create_case: bool


class BatchAuditRequest(BaseModel):
    shipments: list[ShipmentAuditRequest]
    min_severity: Optional[SeverityLevel] = None


class AuditSummaryResponse(BaseModel):
    total_shipments: int
    overcharge_count: int
    undercharge_count: int
    no_discrepancy_count: int
    total_overcharged: float
    total_undercharged: float
    net_discrepancy: float
    critical_issues: int
    high_issues: int
    medium_issues: int
    auto_create_count: int
    average_overcharge: float


class CarrierStatsResponse(BaseModel):
    carrier: str
    total_shipments: int
    overcharge_count: int
    overcharge_rate: float
    total_overcharged: float
    average_overcharge: float


class BatchAuditResponse(BaseModel):
    results: list[AuditResultResponse]
    summary: AuditSummaryResponse
    carrier_stats: list[CarrierStatsResponse]
    cases_dispatched: int


class CaseResponse(BaseModel):
    id: int
    case_number: str
    tracking_id: str
    carrier: str
    status: str
    priority: str
    claimed_amount: Optional[float] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    tags: list[str] = []
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    deadline: Optional[datetime] = None


class CaseSearchRequest(BaseModel):
    query: Optional[str] = None
    carrier: list[str] = []
    status: list[str] = []
    priority: list[str] = []
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_min: Optional[float] = None
    amount_max: Optional[float] = None
    assigned_to: Optional[str] = None
    tags: list[str] = []
    sort_field: str = "created_at"
    sort_direction: Literal['asc', 'desc'] = 'desc'
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=200)


class CaseSearchResponse(BaseModel):
    items: list[CaseResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ClipboardAddRequest(BaseModel):
    content: str = Field(..., min_length=1)
    type: Optional[Literal['text', 'tracking', 'case_number', 'amount', 'address']] = None
    label: Optional[str] = None


class ClipboardItemResponse(BaseModel):
    id: str
    content: str
    type: str
    timestamp: datetime
    user_id: int
    label: Optional[str] = None
    pinned: bool
