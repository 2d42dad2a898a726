# tests/conftest.py
# Fakes for the Supabase client and the notifier, so nothing here talks to the network.

import itertools
from datetime import datetime, timezone

import pytest

from carrier_audit.models import ShipmentAuditData


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the PostgREST builder: select/insert/update + eq/limit + execute."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self._limit = None

    def select(self, *_columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def limit(self, n):
        self._limit = n
        return self

    def execute(self):
        rows = self.db.tables.setdefault(self.table, [])
        self.db.calls.append((self.table, self.op, self.payload, list(self.filters)))
        if self.op == "insert":
            row = {"id": next(self.db.ids), **self.payload}
            rows.append(row)
            return FakeResponse([dict(row)])

        matched = [r for r in rows if all(r.get(k) == v for k, v in self.filters)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload)
        elif self._limit is not None:
            matched = matched[:self._limit]
        return FakeResponse([dict(r) for r in matched])


class FakeSupabase:
    def __init__(self, tables=None):
        self.tables = tables or {}
        self.ids = itertools.count(1)
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, notification):
        self.sent.append(notification)


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_shipment():
    def _make(quoted, actual, **overrides):
        fields = dict(
            tracking_number="1Z999AA10123456784",
            carrier="UPS",
            service_type="Ground",
            quoted_rate=quoted,
            actual_rate=actual,
            weight=10,
            ship_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
        )
        fields.update(overrides)
        return ShipmentAuditData(**fields)
    return _make
