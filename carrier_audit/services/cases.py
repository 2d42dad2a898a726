import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from supabase import Client

from carrier_audit import config
from carrier_audit.models import CaseRecord
from carrier_audit.services.supabase_client import get_supabase

logger = logging.getLogger(__name__)


def format_case_number(case_id: int) -> str:
    return f"CASE-{case_id:06d}"


def _get_single(rowset):
    return rowset[0] if rowset else None


def _jsonable(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in fields.items()}


class CaseStore(Protocol):
    def upsert_case(self, tracking_id: str, fields: dict[str, Any]) -> CaseRecord: ...

    def list_cases(self) -> list[CaseRecord]: ...


class InMemoryCaseStore:
    """Process-local case store, keyed by tracking id."""

    def __init__(self):
        self._cases: dict[str, CaseRecord] = {}
        self._ids = itertools.count(1)

    def upsert_case(self, tracking_id: str, fields: dict[str, Any]) -> CaseRecord:
        now = datetime.now(timezone.utc)
        existing = self._cases.get(tracking_id)
        if existing:
            for key, value in fields.items():
                if key in ("id", "case_number", "tracking_id", "created_at"):
                    continue
                setattr(existing, key, value)
            existing.last_updated = fields.get("last_updated") or now
            return existing

        case_id = next(self._ids)
        record = CaseRecord.from_row({
            "created_at": now,
            "last_updated": now,
            **fields,
            "id": case_id,
            "case_number": format_case_number(case_id),
            "tracking_id": tracking_id,
        })
        self._cases[tracking_id] = record
        return record

    def list_cases(self) -> list[CaseRecord]:
        return list(self._cases.values())


class SupabaseCaseStore:
    """Cases live in a Supabase table; (tracking_id) is the natural key."""

    def __init__(self, db: Client, table: str = config.CASES_TABLE):
        self.db = db
        self.table = table

    def _get_by_tracking_id(self, tracking_id: str):
        resp = (
            self.db.table(self.table)
            .select("*")
            .eq("tracking_id", tracking_id)
            .limit(1)
            .execute()
        )
        return _get_single(resp.data)

    def upsert_case(self, tracking_id: str, fields: dict[str, Any]) -> CaseRecord:
        now_iso = datetime.now(timezone.utc).isoformat()
        payload = {"tracking_id": tracking_id, "last_updated": now_iso, **_jsonable(fields)}
        existing = self._get_by_tracking_id(tracking_id)
        if existing:
            payload.pop("created_at", None)
            resp = self.db.table(self.table).update(payload).eq("id", existing["id"]).execute()
            return CaseRecord.from_row(resp.data[0])

        payload.setdefault("created_at", now_iso)
        resp = self.db.table(self.table).insert(payload).execute()
        row = resp.data[0]
        if not row.get("case_number"):
            # case numbers derive from the database id, known only after insert
            resp = (
                self.db.table(self.table)
                .update({"case_number": format_case_number(row["id"])})
                .eq("id", row["id"])
                .execute()
            )
            row = resp.data[0]
        logger.info("[Cases] Opened %s for %s", row["case_number"], tracking_id)
        return CaseRecord.from_row(row)

    def list_cases(self) -> list[CaseRecord]:
        resp = self.db.table(self.table).select("*").execute()
        return [CaseRecord.from_row(row) for row in (resp.data or [])]


def build_case_store() -> CaseStore:
    if config.CASE_STORE == "supabase":
        return SupabaseCaseStore(get_supabase())
    if config.CASE_STORE != "memory":
        raise ValueError(f"Unknown CASE_STORE: {config.CASE_STORE}")
    return InMemoryCaseStore()
