# tests/test_workflow.py
from datetime import datetime, timedelta, timezone

import pytest

from carrier_audit.models import CaseRecord
from carrier_audit.services.audit import audit_shipment
from carrier_audit.services.cases import InMemoryCaseStore
from carrier_audit.services.workflow import (
    AUDIT_OVERCHARGE_FOUND,
    CASE_CREATED,
    CASE_STATUS_CHANGED,
    DELIVERY_GUARANTEE_MISSED,
    CaseAutomation,
    GuaranteeMiss,
    StatusChange,
    WorkflowRegistry,
    WorkflowTrigger,
    detect_status_from_reply,
    dispatch_audit_results,
    initialize_default_workflows,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryCaseStore()


@pytest.fixture
def automation(notifier, store):
    return CaseAutomation(notifier=notifier, case_store=store, clock=lambda: NOW)


@pytest.fixture
def registry(automation):
    return initialize_default_workflows(WorkflowRegistry(), automation)


def _case(**overrides):
    fields = dict(id=1, case_number="CASE-000001", tracking_id="1Z1", carrier="UPS",
                  status="OPEN", priority="MEDIUM", created_at=NOW, last_updated=NOW)
    fields.update(overrides)
    return CaseRecord(**fields)


# ─────────────────────────────────────────────────────────────────────────────
# Registry mechanics
# ─────────────────────────────────────────────────────────────────────────────

def test_execute_unknown_event_is_noop():
    assert WorkflowRegistry().execute("NOTHING", {}) == 0


def test_condition_gates_actions():
    calls = []
    registry = WorkflowRegistry()
    registry.register(WorkflowTrigger(
        event="E", condition=lambda d: d["go"], actions=[calls.append],
    ))
    assert registry.execute("E", {"go": False}) == 0
    assert registry.execute("E", {"go": True}) == 1
    assert calls == [{"go": True}]


def test_failing_action_does_not_stop_the_rest():
    calls = []

    def boom(_):
        raise RuntimeError("mail relay down")

    registry = WorkflowRegistry()
    registry.register(WorkflowTrigger(event="E", actions=[boom, calls.append]))
    assert registry.execute("E", "payload") == 1
    assert calls == ["payload"]


def test_register_replaces_existing_trigger():
    registry = WorkflowRegistry()
    first, second = [], []
    registry.register(WorkflowTrigger(event="E", actions=[first.append]))
    registry.register(WorkflowTrigger(event="E", actions=[second.append]))
    registry.execute("E", 1)
    assert first == [] and second == [1]


def test_registries_are_independent():
    a, b = WorkflowRegistry(), WorkflowRegistry()
    a.register(WorkflowTrigger(event="E", actions=[]))
    assert b.events() == []


def test_default_workflows_registered(registry):
    assert set(registry.events()) == {
        CASE_CREATED, CASE_STATUS_CHANGED, AUDIT_OVERCHARGE_FOUND, DELIVERY_GUARANTEE_MISSED,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Default triggers
# ─────────────────────────────────────────────────────────────────────────────

def test_overcharge_over_ten_dollars_opens_case(registry, store, notifier, make_shipment):
    result = audit_shipment(make_shipment(100.00, 160.00, tracking_number="1ZOVER"))
    registry.execute(AUDIT_OVERCHARGE_FOUND, result)

    [case] = store.list_cases()
    assert case.tracking_id == "1ZOVER"
    assert case.status == "DRAFT"
    assert case.priority == "URGENT"
    assert case.claimed_amount == pytest.approx(60.0)
    assert [n.template for n in notifier.sent] == ["overcharge-detected"]


def test_overcharge_of_ten_dollars_or_less_is_ignored(registry, store, notifier, make_shipment):
    result = audit_shipment(make_shipment(20.00, 28.00, weight=12, declared_weight=10))
    assert result.auto_create_case is True
    registry.execute(AUDIT_OVERCHARGE_FOUND, result)
    assert store.list_cases() == []
    assert notifier.sent == []


def test_dispatch_only_auto_create_overcharges(registry, store, make_shipment):
    results = [
        audit_shipment(make_shipment(100.00, 160.00, tracking_number="A")),  # critical, auto
        audit_shipment(make_shipment(100.00, 110.00, tracking_number="B")),  # minor, no auto
        audit_shipment(make_shipment(100.00, 50.00, tracking_number="C")),   # undercharge
    ]
    assert dispatch_audit_results(registry, results) == 1
    assert [c.tracking_id for c in store.list_cases()] == ["A"]


def test_dispatch_skips_overcharges_the_trigger_rejects(registry, store, make_shipment):
    # $8 weight overcharge: flagged for auto-creation, but under the $10 trigger
    small = audit_shipment(make_shipment(20.00, 28.00, weight=12, declared_weight=10, tracking_number="S"))
    assert small.auto_create_case is True
    assert dispatch_audit_results(registry, [small]) == 0
    assert store.list_cases() == []


def test_reaudit_updates_the_same_case(registry, store, make_shipment):
    registry.execute(AUDIT_OVERCHARGE_FOUND, audit_shipment(make_shipment(100.00, 160.00, tracking_number="A")))
    registry.execute(AUDIT_OVERCHARGE_FOUND, audit_shipment(make_shipment(100.00, 180.00, tracking_number="A")))
    [case] = store.list_cases()
    assert case.claimed_amount == pytest.approx(80.0)


def test_case_created_notifies_assignee(registry, notifier):
    registry.execute(CASE_CREATED, _case(assigned_to="ops@example.com", claimed_amount=42.0))
    [sent] = notifier.sent
    assert sent.recipient == "ops@example.com"
    assert sent.template == "case-created"
    assert sent.data["claimed_amount"] == 42.0


def test_status_change_falls_back_to_admin(registry, notifier):
    registry.execute(CASE_STATUS_CHANGED, StatusChange(case=_case(), old_status="OPEN", new_status="SUBMITTED"))
    [sent] = notifier.sent
    assert sent.recipient == "admin@example.com"
    assert sent.data == {"case_number": "CASE-000001", "old_status": "OPEN", "new_status": "SUBMITTED"}


def test_guarantee_missed_opens_case(registry, store, notifier):
    miss = GuaranteeMiss(
        tracking_number="7946", carrier="FEDEX",
        promised_date=NOW - timedelta(days=2), actual_date=NOW - timedelta(days=1),
        refund_amount=84.2,
    )
    registry.execute(DELIVERY_GUARANTEE_MISSED, miss)
    [case] = store.list_cases()
    assert case.priority == "HIGH"
    assert case.notes == "Late Delivery (GSR)"
    assert notifier.sent[0].template == "delivery-guarantee-missed"


# ─────────────────────────────────────────────────────────────────────────────
# Time-based automations
# ─────────────────────────────────────────────────────────────────────────────

def test_follow_up_after_seven_days(automation, notifier):
    assert automation.send_follow_up_reminder(_case(last_updated=NOW - timedelta(days=6, hours=23))) is False
    assert automation.send_follow_up_reminder(_case(last_updated=NOW - timedelta(days=7))) is True
    assert notifier.sent[0].data["days_since_update"] == 7


def test_follow_up_parses_string_dates(automation):
    assert automation.send_follow_up_reminder(_case(last_updated="2025-06-01T00:00:00")) is True


@pytest.mark.parametrize("priority, days, expected", [
    ("URGENT", 3, True),
    ("URGENT", 2, False),
    ("HIGH", 7, True),
    ("MEDIUM", 13, False),
    ("LOW", 30, True),
    ("UNKNOWN", 29, False),
])
def test_escalation_thresholds(automation, priority, days, expected):
    case = _case(priority=priority, created_at=NOW - timedelta(days=days))
    assert automation.escalate_case(case) is expected


def test_closed_cases_are_not_escalated(automation, notifier):
    case = _case(priority="URGENT", status="RESOLVED", created_at=NOW - timedelta(days=90))
    assert automation.escalate_case(case) is False
    assert notifier.sent == []


def test_escalation_goes_to_manager(automation, notifier):
    automation.escalate_case(_case(priority="HIGH", created_at=NOW - timedelta(days=10)))
    assert notifier.sent[0].recipient == "manager@example.com"
    assert notifier.sent[0].data["threshold"] == 7


@pytest.mark.parametrize("days, expected", [(7, True), (3, True), (1, True), (5, False), (0, False)])
def test_deadline_reminders(automation, days, expected):
    case = _case(deadline=NOW + timedelta(days=days, hours=1))
    assert automation.notify_deadline_approaching(case) is expected


def test_no_deadline_no_reminder(automation):
    assert automation.notify_deadline_approaching(_case(deadline=None)) is False


@pytest.mark.parametrize("body, status", [
    ("Your claim has been APPROVED and a credit issued.", "APPROVED"),
    ("Unfortunately the shipment is not eligible.", "REJECTED"),
    ("Your request is under review.", "PENDING"),
    ("Thanks for reaching out.", None),
    ("We denied the request, but a refund was issued for fees.", "APPROVED"),
])
def test_detect_status_from_reply(body, status):
    assert detect_status_from_reply(body) == status
