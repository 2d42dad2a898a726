"""
Workflow automation: event triggers and the case automations they run.

A `WorkflowRegistry` is built explicitly (at application start-up or in a
job) and handed to whoever fires events; nothing here is module-global.
"""

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import dateutil.parser

from carrier_audit import config
from carrier_audit.models import AuditResult, CaseRecord, Notification
from carrier_audit.services.cases import CaseStore

logger = logging.getLogger(__name__)

CASE_CREATED = "CASE_CREATED"
CASE_STATUS_CHANGED = "CASE_STATUS_CHANGED"
AUDIT_OVERCHARGE_FOUND = "AUDIT_OVERCHARGE_FOUND"
DELIVERY_GUARANTEE_MISSED = "DELIVERY_GUARANTEE_MISSED"

OVERCHARGE_CASE_MIN_DIFFERENCE = 10

# Days open before an unresolved case is escalated, by priority
ESCALATION_THRESHOLDS = {
    "URGENT": 3,
    "HIGH": 7,
    "MEDIUM": 14,
    "LOW": 30,
}
DEFAULT_ESCALATION_DAYS = 30
FOLLOW_UP_AFTER_DAYS = 7
DEADLINE_REMINDER_DAYS = (7, 3, 1)
CLOSED_STATUSES = ("RESOLVED", "CLOSED")

SEVERITY_TO_PRIORITY = {
    "CRITICAL": "URGENT",
    "HIGH": "HIGH",
    "MEDIUM": "MEDIUM",
    "LOW": "LOW",
}

# Carrier reply keywords; first matching status wins, in this order
REPLY_STATUS_KEYWORDS = {
    "APPROVED": ["approved", "refund", "credit", "accepted"],
    "REJECTED": ["denied", "rejected", "declined", "not eligible"],
    "PENDING": ["review", "investigating", "processing"],
}

SECONDS_PER_DAY = 60 * 60 * 24


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WorkflowTrigger:
    event: str
    actions: list[Callable[[Any], None]]
    condition: Optional[Callable[[Any], bool]] = None


@dataclass
class StatusChange:
    case: CaseRecord
    old_status: str
    new_status: str


@dataclass
class GuaranteeMiss:
    tracking_number: str
    carrier: str
    promised_date: datetime
    actual_date: datetime
    refund_amount: float
    notes: Optional[str] = None


class WorkflowRegistry:
    def __init__(self):
        self._triggers: dict[str, WorkflowTrigger] = {}

    def register(self, trigger: WorkflowTrigger) -> None:
        self._triggers[trigger.event] = trigger

    def events(self) -> list[str]:
        return list(self._triggers)

    def execute(self, event: str, data: Any) -> int:
        """
        Run the trigger registered for `event`.

        Returns the number of actions that completed. A failing action is
        logged and the remaining actions still run.
        """
        trigger = self._triggers.get(event)
        if trigger is None:
            return 0
        if trigger.condition is not None and not trigger.condition(data):
            return 0

        completed = 0
        for action in trigger.actions:
            try:
                action(data)
                completed += 1
            except Exception:
                logger.exception("[Workflow] Action failed for event %s", event)
        return completed


def _as_utc(value: datetime | str) -> datetime:
    dt = dateutil.parser.parse(value) if isinstance(value, str) else value
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _whole_days(delta_seconds: float) -> int:
    return math.floor(delta_seconds / SECONDS_PER_DAY)


def detect_status_from_reply(body: str) -> Optional[str]:
    """Map a carrier's email reply to APPROVED / REJECTED / PENDING, or None."""
    text = (body or "").lower()
    for status, words in REPLY_STATUS_KEYWORDS.items():
        if any(word in text for word in words):
            return status
    return None


@dataclass
class CaseAutomation:
    notifier: Any
    case_store: CaseStore
    clock: Callable[[], datetime] = _utcnow

    def notify(self, type_: str, recipient: str, template: str, data: dict[str, Any]) -> None:
        self.notifier.send(Notification(type=type_, recipient=recipient, template=template, data=data))

    # ── Case creation ────────────────────────────────────────────────────────

    def create_case_from_audit(self, result: AuditResult) -> dict[str, int]:
        record = self.case_store.upsert_case(result.tracking_number, {
            "carrier": result.carrier,
            "status": "DRAFT",
            "priority": SEVERITY_TO_PRIORITY.get(result.severity, "MEDIUM"),
            "claimed_amount": round(result.difference, 2),
            "notes": result.reason,
        })
        logger.info("[Workflow] Case %s drafted from audit of %s", record.case_number, result.tracking_number)
        return {"case_id": record.id}

    def create_case_from_guarantee_miss(self, miss: GuaranteeMiss) -> dict[str, int]:
        record = self.case_store.upsert_case(miss.tracking_number, {
            "carrier": miss.carrier,
            "status": "DRAFT",
            "priority": "HIGH",
            "claimed_amount": round(miss.refund_amount, 2),
            "notes": miss.notes or "Late Delivery (GSR)",
        })
        return {"case_id": record.id}

    # ── Time-based automations ───────────────────────────────────────────────

    def send_follow_up_reminder(self, case: CaseRecord) -> bool:
        if case.last_updated is None:
            return False
        days_since_update = _whole_days((self.clock() - _as_utc(case.last_updated)).total_seconds())
        if days_since_update < FOLLOW_UP_AFTER_DAYS:
            return False

        self.notify("EMAIL", case.assigned_to or config.ADMIN_EMAIL, "follow-up-reminder", {
            "case_number": case.case_number,
            "days_since_update": days_since_update,
        })
        return True

    def escalate_case(self, case: CaseRecord) -> bool:
        if case.created_at is None or case.status in CLOSED_STATUSES:
            return False
        days_open = _whole_days((self.clock() - _as_utc(case.created_at)).total_seconds())
        threshold = ESCALATION_THRESHOLDS.get(case.priority, DEFAULT_ESCALATION_DAYS)
        if days_open < threshold:
            return False

        self.notify("EMAIL", config.MANAGER_EMAIL, "case-escalation", {
            "case_number": case.case_number,
            "priority": case.priority,
            "days_open": days_open,
            "threshold": threshold,
        })
        return True

    def notify_deadline_approaching(self, case: CaseRecord) -> bool:
        if case.deadline is None:
            return False
        days_until_deadline = _whole_days((_as_utc(case.deadline) - self.clock()).total_seconds())
        if days_until_deadline not in DEADLINE_REMINDER_DAYS:
            return False

        self.notify("EMAIL", case.assigned_to or config.ADMIN_EMAIL, "deadline-reminder", {
            "case_number": case.case_number,
            "deadline": _as_utc(case.deadline).isoformat(),
            "days_remaining": days_until_deadline,
        })
        return True


def initialize_default_workflows(registry: WorkflowRegistry, automation: CaseAutomation) -> WorkflowRegistry:
    def on_case_created(case: CaseRecord):
        automation.notify("EMAIL", case.assigned_to or config.ADMIN_EMAIL, "case-created", {
            "case_number": case.case_number,
            "carrier": case.carrier,
            "claimed_amount": case.claimed_amount,
        })

    def on_status_changed(change: StatusChange):
        automation.notify("EMAIL", change.case.assigned_to or config.ADMIN_EMAIL, "status-changed", {
            "case_number": change.case.case_number,
            "old_status": change.old_status,
            "new_status": change.new_status,
        })

    def on_overcharge(result: AuditResult):
        automation.create_case_from_audit(result)
        automation.notify("EMAIL", config.ADMIN_EMAIL, "overcharge-detected", {
            "tracking_number": result.tracking_number,
            "carrier": result.carrier,
            "difference": result.difference,
        })

    def on_guarantee_missed(miss: GuaranteeMiss):
        automation.create_case_from_guarantee_miss(miss)
        automation.notify("EMAIL", config.ADMIN_EMAIL, "delivery-guarantee-missed", {
            "tracking_number": miss.tracking_number,
            "carrier": miss.carrier,
            "promised_date": _as_utc(miss.promised_date).isoformat(),
            "actual_date": _as_utc(miss.actual_date).isoformat(),
            "refund_amount": miss.refund_amount,
        })

    registry.register(WorkflowTrigger(event=CASE_CREATED, actions=[on_case_created]))
    registry.register(WorkflowTrigger(event=CASE_STATUS_CHANGED, actions=[on_status_changed]))
    registry.register(WorkflowTrigger(
        event=AUDIT_OVERCHARGE_FOUND,
        condition=lambda result: result.difference > OVERCHARGE_CASE_MIN_DIFFERENCE,
        actions=[on_overcharge],
    ))
    registry.register(WorkflowTrigger(event=DELIVERY_GUARANTEE_MISSED, actions=[on_guarantee_missed]))
    return registry


def dispatch_audit_results(registry: WorkflowRegistry, results: Iterable[AuditResult]) -> int:
    """
    Fire AUDIT_OVERCHARGE_FOUND for every overcharge flagged for auto-creation.

    Returns how many of those events ran at least one action; results the
    trigger condition rejects (or whose actions all failed) are not counted.
    """
    dispatched = 0
    for result in results:
        if result.discrepancy_type == 'OVERCHARGE' and result.auto_create_case:
            if registry.execute(AUDIT_OVERCHARGE_FOUND, result):
                dispatched += 1
    return dispatched
