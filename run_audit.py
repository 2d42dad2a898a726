"""
Batch rate audit over the shipments ledger.

Pulls every PENDING shipment from Supabase, audits quoted vs billed rate,
writes the verdict back, fires the overcharge workflow (which drafts cases)
and prints the summary plus a per-carrier table.
"""

import logging
from typing import Any, Optional

import dateutil.parser
import pandas as pd
from supabase import Client

from carrier_audit import config
from carrier_audit.models import AuditResult, AuditSummary, CarrierStats, ShipmentAuditData
from carrier_audit.services.audit import batch_audit_shipments, get_audit_summary, get_carrier_stats
from carrier_audit.services.cases import SupabaseCaseStore
from carrier_audit.services.notifications import build_notifier
from carrier_audit.services.supabase_client import get_supabase
from carrier_audit.services.workflow import (
    CaseAutomation,
    WorkflowRegistry,
    dispatch_audit_results,
    initialize_default_workflows,
)

logger = logging.getLogger("run_audit")

AUDIT_STATUS_BY_TYPE = {
    "OVERCHARGE": "OVERCHARGE",
    "UNDERCHARGE": "UNDERCHARGE",
    "NONE": "CLEARED",
}


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(str(value).replace("$", "").replace(",", ""))


def row_to_audit_data(row: dict[str, Any]) -> Optional[ShipmentAuditData]:
    """Map a shipments row onto the audit input; None when either rate is missing."""
    quoted = _to_float(row.get("quoted_rate"))
    actual = _to_float(row.get("total_charged"))
    if quoted is None or actual is None:
        return None

    shipped_at = row.get("shipped_at")
    return ShipmentAuditData(
        tracking_number=str(row["tracking_number"]).strip(),
        carrier=(row.get("carrier") or "OTHER").strip().upper(),
        service_type=row.get("service_type") or "",
        quoted_rate=quoted,
        actual_rate=actual,
        weight=_to_float(row.get("weight_lbs")) or 0.0,
        declared_weight=_to_float(row.get("declared_weight_lbs")),
        dimensions=row.get("dims"),
        declared_dimensions=row.get("declared_dims"),
        zone=row.get("zone"),
        ship_date=dateutil.parser.parse(shipped_at) if isinstance(shipped_at, str) else shipped_at,
    )


def carrier_stats_frame(stats: list[CarrierStats]) -> pd.DataFrame:
    columns = ["carrier", "total_shipments", "overcharge_count", "overcharge_rate",
               "total_overcharged", "average_overcharge"]
    return pd.DataFrame([s.to_dict() for s in stats], columns=columns)


def print_report(summary: AuditSummary, stats: list[CarrierStats]) -> None:
    print(f"📊 [SUMMARY] {summary.total_shipments} shipments audited")
    print(f"   Overcharges: {summary.overcharge_count} (${summary.total_overcharged:,.2f})")
    print(f"   Undercharges: {summary.undercharge_count} (${summary.total_undercharged:,.2f})")
    print(f"   Net discrepancy: ${summary.net_discrepancy:,.2f}")
    print(f"   Critical/High/Medium: {summary.critical_issues}/{summary.high_issues}/{summary.medium_issues}")
    if stats:
        print(carrier_stats_frame(stats).to_string(index=False, float_format=lambda v: f"{v:,.2f}"))


def run_batch_audit(db: Client, registry: WorkflowRegistry) -> list[AuditResult]:
    response = (
        db.table(config.SHIPMENTS_TABLE)
        .select("*")
        .eq("audit_status", "PENDING")
        .execute()
    )
    rows = response.data or []
    if not rows:
        logger.info("[Audit] No pending shipments found")
        return []

    # tracking numbers repeat across multi-piece and re-billed rows; write back by row id
    row_ids = []
    shipments = []
    for row in rows:
        try:
            data = row_to_audit_data(row)
        except ValueError as e:
            logger.warning("[Audit] Skipping %s: unreadable numeric field (%s)", row.get("tracking_number"), e)
            continue
        if data is None:
            logger.warning("[Audit] Skipping %s: missing quoted or billed rate", row.get("tracking_number"))
            continue
        row_ids.append(row["id"])
        shipments.append(data)

    results = batch_audit_shipments(shipments)
    for row_id, result in zip(row_ids, results):
        db.table(config.SHIPMENTS_TABLE).update({
            "audit_status": AUDIT_STATUS_BY_TYPE[result.discrepancy_type],
            "audit_difference": round(result.difference, 2),
        }).eq("id", row_id).execute()

    dispatched = dispatch_audit_results(registry, results)
    logger.info("[Audit] %d shipments audited, %d overcharges dispatched to workflows", len(results), dispatched)
    return results


def main() -> None:
    config.configure_logging()
    db = get_supabase()
    automation = CaseAutomation(notifier=build_notifier(), case_store=SupabaseCaseStore(db))
    registry = initialize_default_workflows(WorkflowRegistry(), automation)

    results = run_batch_audit(db, registry)
    print_report(get_audit_summary(results), get_carrier_stats(results))


if __name__ == "__main__":
    main()
