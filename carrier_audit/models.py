# models.py  ──  domain records shared by the services, routers and the batch job
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

import dateutil.parser

DiscrepancyType = Literal['OVERCHARGE', 'UNDERCHARGE', 'NONE']
Severity = Literal['LOW', 'MEDIUM', 'HIGH', 'CRITICAL']
CasePriority = Literal['URGENT', 'HIGH', 'MEDIUM', 'LOW']
NotificationType = Literal['EMAIL', 'PUSH', 'SMS']
ClipboardType = Literal['text', 'tracking', 'case_number', 'amount', 'address']

SEVERITY_ORDER: dict[str, int] = {'LOW': 0, 'MEDIUM': 1, 'HIGH': 2, 'CRITICAL': 3}


@dataclass
class ShipmentAuditData:
    tracking_number: str
    carrier: str
    service_type: str
    quoted_rate: float
    actual_rate: float
    weight: float
    ship_date: datetime
    declared_weight: Optional[float] = None
    dimensions: Optional[str] = None            # "LxWxH", compared verbatim
    declared_dimensions: Optional[str] = None
    zone: Optional[str] = None


@dataclass
class AuditResult:
    tracking_number: str
    carrier: str
    discrepancy_type: DiscrepancyType
    quoted_rate: float
    actual_rate: float
    difference: float
    difference_percent: float
    reason: str
    severity: Severity
    auto_create_case: bool

    def to_dict(self):
        return asdict(self)


@dataclass
class AuditSummary:
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

    def to_dict(self):
        return asdict(self)


@dataclass
class CarrierStats:
    carrier: str
    total_shipments: int
    overcharge_count: int
    overcharge_rate: float
    total_overcharged: float
    average_overcharge: float

    def to_dict(self):
        return asdict(self)


@dataclass
class CaseRecord:
    id: int
    case_number: str
    tracking_id: str
    carrier: str
    status: str = "DRAFT"
    priority: CasePriority = "MEDIUM"
    claimed_amount: Optional[float] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    deadline: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CaseRecord":
        known = {k: row.get(k) for k in cls.__dataclass_fields__ if k in row}
        known["tags"] = list(row.get("tags") or [])
        for key in ("created_at", "last_updated", "deadline"):
            if isinstance(known.get(key), str):
                known[key] = dateutil.parser.parse(known[key])
        return cls(**known)

    def to_dict(self):
        return asdict(self)


@dataclass
class Notification:
    type: NotificationType
    recipient: str
    template: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return asdict(self)


@dataclass
class ClipboardItem:
    id: str
    content: str
    type: ClipboardType
    timestamp: datetime
    user_id: int
    label: Optional[str] = None
    pinned: bool = False

    def to_dict(self):
        return asdict(self)
