"""
Rate audit: compares the quoted rate of a shipment with what the carrier
actually billed, classifies the discrepancy and grades its severity.

Everything here is pure. Results are not persisted; callers decide what to
store and whether to hand auto-create results to the workflow registry.
"""

import math
from collections.abc import Iterable

from carrier_audit.models import (
    SEVERITY_ORDER,
    AuditResult,
    AuditSummary,
    CarrierStats,
    ShipmentAuditData,
)

TOLERANCE_PERCENT = 1.0


def _format_lbs(value: float) -> str:
    # whole numbers print without a trailing ".0"; everything else in full
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _percent_of(difference: float, quoted_rate: float) -> float:
    # Python raises on x / 0.0; callers that skip validation get IEEE-754 values instead.
    if quoted_rate == 0:
        if difference == 0 or math.isnan(difference):
            return math.nan
        return math.copysign(math.inf, difference) * math.copysign(1.0, quoted_rate)
    return difference / quoted_rate * 100


def audit_shipment(shipment: ShipmentAuditData) -> AuditResult:
    """
    Classify one shipment's billed rate against its quote.

    Rules are evaluated in priority order and the first match wins:
    tolerance (under 1%), then the overcharge rules (weight, dimensions,
    >50%, >20%, minor), else undercharge. Undercharges never auto-create a
    case.

    A zero quoted rate is not rejected: the percentage becomes +/-inf (or
    NaN for 0/0) and flows through the rules like any other number.
    """
    difference = shipment.actual_rate - shipment.quoted_rate
    difference_percent = _percent_of(difference, shipment.quoted_rate)

    if abs(difference_percent) < TOLERANCE_PERCENT:
        return AuditResult(
            tracking_number=shipment.tracking_number,
            carrier=shipment.carrier,
            discrepancy_type='NONE',
            quoted_rate=shipment.quoted_rate,
            actual_rate=shipment.actual_rate,
            difference=0,
            difference_percent=0,
            reason="Rate matches quote within tolerance",
            severity='LOW',
            auto_create_case=False,
        )

    if difference > 0:
        discrepancy_type = 'OVERCHARGE'

        if shipment.declared_weight and shipment.weight > shipment.declared_weight:
            reason = (
                f"Weight discrepancy: Actual {_format_lbs(shipment.weight)} lbs "
                f"vs Declared {_format_lbs(shipment.declared_weight)} lbs"
            )
            severity = 'HIGH' if difference > 10 else 'MEDIUM'
            auto_create_case = difference > 5
        elif shipment.declared_dimensions and shipment.dimensions != shipment.declared_dimensions:
            reason = (
                f"Dimensional weight adjustment: {shipment.dimensions} "
                f"vs {shipment.declared_dimensions}"
            )
            severity = 'CRITICAL' if difference > 15 else 'HIGH'
            auto_create_case = difference > 10
        elif difference_percent > 50:
            reason = f"Significant rate increase: {difference_percent:.1f}% over quote"
            severity = 'CRITICAL'
            auto_create_case = True
        elif difference_percent > 20:
            reason = f"Rate increase: {difference_percent:.1f}% over quote"
            severity = 'HIGH'
            auto_create_case = difference > 20
        else:
            reason = f"Minor rate adjustment: {difference_percent:.1f}% over quote"
            severity = 'MEDIUM'
            auto_create_case = difference > 15
    else:
        discrepancy_type = 'UNDERCHARGE'
        reason = f"Undercharged: {abs(difference_percent):.1f}% below quote"
        severity = 'HIGH' if abs(difference) > 20 else 'MEDIUM'
        auto_create_case = False

    return AuditResult(
        tracking_number=shipment.tracking_number,
        carrier=shipment.carrier,
        discrepancy_type=discrepancy_type,
        quoted_rate=shipment.quoted_rate,
        actual_rate=shipment.actual_rate,
        difference=difference,
        difference_percent=difference_percent,
        reason=reason,
        severity=severity,
        auto_create_case=auto_create_case,
    )


def batch_audit_shipments(shipments: Iterable[ShipmentAuditData]) -> list[AuditResult]:
    return [audit_shipment(s) for s in shipments]


def get_audit_summary(results: list[AuditResult]) -> AuditSummary:
    overcharges = [r for r in results if r.discrepancy_type == 'OVERCHARGE']
    undercharges = [r for r in results if r.discrepancy_type == 'UNDERCHARGE']
    no_discrepancy = [r for r in results if r.discrepancy_type == 'NONE']

    total_overcharged = sum(r.difference for r in overcharges)
    total_undercharged = sum(abs(r.difference) for r in undercharges)

    return AuditSummary(
        total_shipments=len(results),
        overcharge_count=len(overcharges),
        undercharge_count=len(undercharges),
        no_discrepancy_count=len(no_discrepancy),
        total_overcharged=total_overcharged,
        total_undercharged=total_undercharged,
        net_discrepancy=total_overcharged - total_undercharged,
        # LOW has no issue bucket
        critical_issues=sum(1 for r in results if r.severity == 'CRITICAL'),
        high_issues=sum(1 for r in results if r.severity == 'HIGH'),
        medium_issues=sum(1 for r in results if r.severity == 'MEDIUM'),
        auto_create_count=sum(1 for r in results if r.auto_create_case),
        average_overcharge=total_overcharged / len(overcharges) if overcharges else 0,
    )


def severity_rank(severity: str) -> int:
    try:
        return SEVERITY_ORDER[severity]
    except KeyError:
        raise ValueError(f"Unknown severity: {severity}") from None


def filter_by_severity(results: list[AuditResult], min_severity: str) -> list[AuditResult]:
    """Keep results at or above `min_severity` (LOW < MEDIUM < HIGH < CRITICAL), in input order."""
    min_level = severity_rank(min_severity)
    return [r for r in results if severity_rank(r.severity) >= min_level]


def get_carrier_stats(results: list[AuditResult]) -> list[CarrierStats]:
    # dict keeps carriers in order of first appearance
    by_carrier: dict[str, list[AuditResult]] = {}
    for r in results:
        by_carrier.setdefault(r.carrier, []).append(r)

    stats = []
    for carrier, carrier_results in by_carrier.items():
        overcharges = [r for r in carrier_results if r.discrepancy_type == 'OVERCHARGE']
        total_overcharged = sum(r.difference for r in overcharges)
        stats.append(CarrierStats(
            carrier=carrier,
            total_shipments=len(carrier_results),
            overcharge_count=len(overcharges),
            overcharge_rate=len(overcharges) / len(carrier_results) * 100,
            total_overcharged=total_overcharged,
            average_overcharge=total_overcharged / len(overcharges) if overcharges else 0,
        ))
    return stats
