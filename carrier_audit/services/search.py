"""
Case search: text query, filters, sort and pagination over in-memory case
lists, the same filters expressed as a Supabase query, and a Levenshtein
based fuzzy matcher.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

import dateutil.parser

TEXT_SEARCH_FIELDS = ["case_number", "tracking_id", "customer_name", "notes"]


@dataclass
class SearchFilters:
    query: Optional[str] = None
    carrier: list[str] = field(default_factory=list)
    status: list[str] = field(default_factory=list)
    priority: list[str] = field(default_factory=list)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_min: Optional[float] = None
    amount_max: Optional[float] = None
    assigned_to: Optional[str] = None
    tags: list[str] = field(default_factory=list)


@dataclass
class SortOptions:
    field: str = "created_at"
    direction: Literal['asc', 'desc'] = 'desc'


@dataclass
class PaginationOptions:
    page: int = 1
    page_size: int = 20


@dataclass
class SearchResult:
    items: list[Any]
    total: int
    page: int
    page_size: int
    total_pages: int


def get_nested_value(obj: Any, path: str) -> Any:
    """Resolve a dotted path through dicts and attributes; None when any step is missing."""
    current = obj
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(key)
        else:
            current = getattr(current, key, None)
    return current


def _as_utc(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    dt = dateutil.parser.parse(value) if isinstance(value, str) else value
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def apply_text_search(items: list[Any], query: str, fields: list[str]) -> list[Any]:
    if not query:
        return items
    needle = query.lower()

    def matches(item):
        for f in fields:
            value = get_nested_value(item, f)
            if value and needle in str(value).lower():
                return True
        return False

    return [item for item in items if matches(item)]


def apply_filters(items: list[Any], filters: SearchFilters) -> list[Any]:
    filtered = items

    if filters.carrier:
        filtered = [i for i in filtered if get_nested_value(i, "carrier") in filters.carrier]
    if filters.status:
        filtered = [i for i in filtered if get_nested_value(i, "status") in filters.status]
    if filters.priority:
        filtered = [i for i in filtered if get_nested_value(i, "priority") in filters.priority]

    # items without a created_at never satisfy a date bound
    if filters.date_from:
        lower = _as_utc(filters.date_from)
        filtered = [i for i in filtered
                    if (created := _as_utc(get_nested_value(i, "created_at"))) is not None and created >= lower]
    if filters.date_to:
        upper = _as_utc(filters.date_to)
        filtered = [i for i in filtered
                    if (created := _as_utc(get_nested_value(i, "created_at"))) is not None and created <= upper]

    if filters.amount_min is not None:
        filtered = [i for i in filtered if (get_nested_value(i, "claimed_amount") or 0) >= filters.amount_min]
    if filters.amount_max is not None:
        filtered = [i for i in filtered if (get_nested_value(i, "claimed_amount") or 0) <= filters.amount_max]

    if filters.assigned_to:
        filtered = [i for i in filtered if get_nested_value(i, "assigned_to") == filters.assigned_to]

    if filters.tags:
        wanted = set(filters.tags)
        filtered = [i for i in filtered if wanted.intersection(get_nested_value(i, "tags") or [])]

    return filtered


def apply_sort(items: list[Any], sort: SortOptions) -> list[Any]:
    """Stable sort on `sort.field`; missing values go last ascending, first descending."""
    def key(item):
        value = get_nested_value(item, sort.field)
        if isinstance(value, datetime):
            value = _as_utc(value)
        return (value is None, value if value is not None else 0)

    return sorted(items, key=key, reverse=sort.direction == 'desc')


def apply_pagination(items: list[Any], pagination: PaginationOptions) -> list[Any]:
    start = (pagination.page - 1) * pagination.page_size
    return items[start:start + pagination.page_size]


def search_cases(cases: list[Any],
                 filters: Optional[SearchFilters] = None,
                 sort: Optional[SortOptions] = None,
                 pagination: Optional[PaginationOptions] = None) -> SearchResult:
    filters = filters or SearchFilters()
    sort = sort or SortOptions()
    pagination = pagination or PaginationOptions()

    results = cases
    if filters.query:
        results = apply_text_search(results, filters.query, TEXT_SEARCH_FIELDS)
    results = apply_filters(results, filters)
    results = apply_sort(results, sort)

    total = len(results)
    return SearchResult(
        items=apply_pagination(results, pagination),
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
        total_pages=math.ceil(total / pagination.page_size),
    )


def apply_search_query(query, filters: SearchFilters):
    """
    Push `filters` down onto a PostgREST select builder, e.g.
    ``apply_search_query(db.table("cases").select("*"), filters).execute()``.

    Text search is a case-insensitive OR across the text fields; tag filtering
    stays in Python (see `apply_filters`) because it is an any-of match on an
    array column.
    """
    if filters.query:
        pattern = filters.query.replace(",", " ")
        query = query.or_(",".join(f"{f}.ilike.%{pattern}%" for f in TEXT_SEARCH_FIELDS))
    if filters.carrier:
        query = query.in_("carrier", filters.carrier)
    if filters.status:
        query = query.in_("status", filters.status)
    if filters.priority:
        query = query.in_("priority", filters.priority)
    if filters.date_from:
        query = query.gte("created_at", _as_utc(filters.date_from).isoformat())
    if filters.date_to:
        query = query.lte("created_at", _as_utc(filters.date_to).isoformat())
    if filters.amount_min is not None:
        query = query.gte("claimed_amount", filters.amount_min)
    if filters.amount_max is not None:
        query = query.lte("claimed_amount", filters.amount_max)
    if filters.assigned_to:
        query = query.eq("assigned_to", filters.assigned_to)
    return query


def get_filter_suggestions(items: list[Any]) -> dict[str, list[str]]:
    carriers, statuses, priorities, assignees, tags = set(), set(), set(), set(), set()
    for item in items:
        if carrier := get_nested_value(item, "carrier"):
            carriers.add(carrier)
        if status := get_nested_value(item, "status"):
            statuses.add(status)
        if priority := get_nested_value(item, "priority"):
            priorities.add(priority)
        if assignee := get_nested_value(item, "assigned_to"):
            assignees.add(assignee)
        tags.update(get_nested_value(item, "tags") or [])

    return {
        "carriers": sorted(carriers),
        "statuses": sorted(statuses),
        "priorities": sorted(priorities),
        "assignees": sorted(assignees),
        "tags": sorted(tags),
    }


def levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], current[j - 1], previous[j]) + 1)
        previous = current
    return previous[-1]


def fuzzy_search(query: str, text: str) -> float:
    """1.0 for a substring hit, otherwise 1 - edit distance / longer length."""
    q, t = query.lower(), text.lower()
    if q in t:
        return 1.0
    return 1 - levenshtein(t, q) / max(len(q), len(t))
