# tests/test_search.py
from datetime import datetime, timezone

import pytest

from carrier_audit.models import CaseRecord
from carrier_audit.services.search import (
    PaginationOptions,
    SearchFilters,
    SortOptions,
    apply_search_query,
    fuzzy_search,
    get_filter_suggestions,
    get_nested_value,
    levenshtein,
    search_cases,
)


def _dt(day):
    return datetime(2025, 5, day, tzinfo=timezone.utc)


@pytest.fixture
def cases():
    return [
        CaseRecord(id=1, case_number="CASE-000001", tracking_id="1ZAAA", carrier="UPS", status="DRAFT",
                   priority="HIGH", claimed_amount=120.0, customer_name="Acme Corp", assigned_to="dana",
                   tags=["damage"], created_at=_dt(1)),
        CaseRecord(id=2, case_number="CASE-000002", tracking_id="7946BBB", carrier="FEDEX", status="SUBMITTED",
                   priority="LOW", claimed_amount=15.0, notes="dimensional weight", tags=["billing", "dim"],
                   created_at=_dt(3)),
        CaseRecord(id=3, case_number="CASE-000003", tracking_id="9400CCC", carrier="USPS", status="DRAFT",
                   priority="MEDIUM", claimed_amount=None, customer_name="Beta LLC", assigned_to="dana",
                   created_at=_dt(2)),
    ]


def test_default_search_sorts_newest_first(cases):
    result = search_cases(cases)
    assert [c.id for c in result.items] == [2, 3, 1]
    assert (result.total, result.page, result.page_size, result.total_pages) == (3, 1, 20, 1)


def test_text_query_is_case_insensitive(cases):
    assert [c.id for c in search_cases(cases, SearchFilters(query="acme")).items] == [1]
    assert [c.id for c in search_cases(cases, SearchFilters(query="DIMENSIONAL")).items] == [2]
    assert [c.id for c in search_cases(cases, SearchFilters(query="9400")).items] == [3]


def test_membership_filters(cases):
    result = search_cases(cases, SearchFilters(carrier=["UPS", "USPS"], status=["DRAFT"]))
    assert {c.id for c in result.items} == {1, 3}


def test_date_range(cases):
    result = search_cases(cases, SearchFilters(date_from=_dt(2), date_to=_dt(3)))
    assert {c.id for c in result.items} == {2, 3}


def test_amount_range_treats_missing_as_zero(cases):
    assert {c.id for c in search_cases(cases, SearchFilters(amount_max=20)).items} == {2, 3}
    assert {c.id for c in search_cases(cases, SearchFilters(amount_min=20)).items} == {1}


def test_assignee_and_tags(cases):
    assert {c.id for c in search_cases(cases, SearchFilters(assigned_to="dana")).items} == {1, 3}
    assert {c.id for c in search_cases(cases, SearchFilters(tags=["dim", "nope"])).items} == {2}


def test_sort_ascending_with_missing_values_last(cases):
    result = search_cases(cases, sort=SortOptions(field="claimed_amount", direction="asc"))
    assert [c.id for c in result.items] == [2, 1, 3]


def test_pagination(cases):
    result = search_cases(cases, pagination=PaginationOptions(page=2, page_size=2))
    assert [c.id for c in result.items] == [1]
    assert result.total == 3
    assert result.total_pages == 2


def test_works_on_plain_dicts():
    rows = [{"carrier": "UPS", "created_at": "2025-05-01T00:00:00Z"},
            {"carrier": "DHL", "created_at": "2025-05-02T00:00:00Z"}]
    result = search_cases(rows, SearchFilters(date_from=datetime(2025, 5, 2)))
    assert result.items == [rows[1]]


def test_get_nested_value():
    assert get_nested_value({"a": {"b": 3}}, "a.b") == 3
    assert get_nested_value({"a": None}, "a.b") is None


def test_filter_suggestions(cases):
    suggestions = get_filter_suggestions(cases)
    assert suggestions["carriers"] == ["FEDEX", "UPS", "USPS"]
    assert suggestions["statuses"] == ["DRAFT", "SUBMITTED"]
    assert suggestions["assignees"] == ["dana"]
    assert suggestions["tags"] == ["billing", "damage", "dim"]


class RecordingQuery:
    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def method(*args):
            self.calls.append((name, args))
            return self
        return method


def test_apply_search_query_translates_filters():
    query = apply_search_query(RecordingQuery(), SearchFilters(
        query="acme", carrier=["UPS"], amount_min=10, assigned_to="dana",
        date_from=datetime(2025, 5, 1),
    ))
    assert query.calls == [
        ("or_", ("case_number.ilike.%acme%,tracking_id.ilike.%acme%,"
                 "customer_name.ilike.%acme%,notes.ilike.%acme%",)),
        ("in_", ("carrier", ["UPS"])),
        ("gte", ("created_at", "2025-05-01T00:00:00+00:00")),
        ("gte", ("claimed_amount", 10)),
        ("eq", ("assigned_to", "dana")),
    ]


def test_apply_search_query_without_filters_is_untouched():
    assert apply_search_query(RecordingQuery(), SearchFilters()).calls == []


def test_levenshtein():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3


def test_fuzzy_search():
    assert fuzzy_search("FedEx", "fedex ground") == 1.0
    assert fuzzy_search("fedx", "fedex") == pytest.approx(0.8)
    assert fuzzy_search("abc", "xyz") == 0.0
