import logging

from fastapi import APIRouter, Depends, HTTPException

from carrier_audit.dependencies import Services, get_services
from carrier_audit.schemas import (
    AuditResultResponse,
    BatchAuditRequest,
    BatchAuditResponse,
    ShipmentAuditRequest,
)
from carrier_audit.services.audit import (
    audit_shipment,
    batch_audit_shipments,
    filter_by_severity,
    get_audit_summary,
    get_carrier_stats,
)
from carrier_audit.services.workflow import dispatch_audit_results

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.post("/shipment", response_model=AuditResultResponse)
def audit_one(shipment: ShipmentAuditRequest):
    result = audit_shipment(shipment.to_audit_data())
    return result.to_dict()


@router.post("/batch", response_model=BatchAuditResponse)
def audit_batch(batch: BatchAuditRequest, services: Services = Depends(get_services)):
    try:
        results = batch_audit_shipments(s.to_audit_data() for s in batch.shipments)

        dispatched = dispatch_audit_results(services.registry, results)
        if dispatched:
            services.invalidator.cases()

        summary = get_audit_summary(results)
        carrier_stats = get_carrier_stats(results)
        if batch.min_severity:
            results = filter_by_severity(results, batch.min_severity)

        logger.info(
            "[Audit] Batch of %d shipments: %d overcharges, %d cases dispatched",
            summary.total_shipments, summary.overcharge_count, dispatched,
        )
        return {
            "results": [r.to_dict() for r in results],
            "summary": summary.to_dict(),
            "carrier_stats": [c.to_dict() for c in carrier_stats],
            "cases_dispatched": dispatched,
        }
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
