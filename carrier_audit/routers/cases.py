from fastapi import APIRouter, Depends

from carrier_audit.dependencies import Services, get_services
from carrier_audit.schemas import CaseSearchRequest, CaseSearchResponse
from carrier_audit.services.cache import cache_keys
from carrier_audit.services.search import (
    PaginationOptions,
    SearchFilters,
    SortOptions,
    get_filter_suggestions,
    search_cases,
)

router = APIRouter(prefix="/cases", tags=["Cases"])


def _cached_cases(services: Services):
    return services.cache.get_or_set(cache_keys.cases.list(), services.case_store.list_cases)


@router.post("/search", response_model=CaseSearchResponse)
def search(request: CaseSearchRequest, services: Services = Depends(get_services)):
    filters = SearchFilters(**request.model_dump(exclude={"sort_field", "sort_direction", "page", "page_size"}))
    result = search_cases(
        _cached_cases(services),
        filters,
        SortOptions(field=request.sort_field, direction=request.sort_direction),
        PaginationOptions(page=request.page, page_size=request.page_size),
    )
    return {
        "items": [case.to_dict() for case in result.items],
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
        "total_pages": result.total_pages,
    }


@router.get("/filters")
def filters(services: Services = Depends(get_services)):
    return get_filter_suggestions(_cached_cases(services))
