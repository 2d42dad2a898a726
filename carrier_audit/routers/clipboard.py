from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from carrier_audit.dependencies import Services, get_services
from carrier_audit.schemas import ClipboardAddRequest, ClipboardItemResponse
from carrier_audit.services.clipboard import ClipboardLimitError

router = APIRouter(prefix="/clipboard", tags=["Clipboard"])


@router.post("/{user_id}", response_model=ClipboardItemResponse)
def add_item(user_id: int, body: ClipboardAddRequest, services: Services = Depends(get_services)):
    item = services.clipboard.add_item(user_id, body.content, type=body.type, label=body.label)
    return item.to_dict()


@router.get("/{user_id}", response_model=list[ClipboardItemResponse])
def history(user_id: int, limit: Optional[int] = None, type: Optional[str] = None,
            services: Services = Depends(get_services)):
    if type:
        return [i.to_dict() for i in services.clipboard.get_by_type(user_id, type)]
    return [i.to_dict() for i in services.clipboard.get_history(user_id, limit)]


@router.get("/{user_id}/search", response_model=list[ClipboardItemResponse])
def search(user_id: int, q: str, services: Services = Depends(get_services)):
    return [i.to_dict() for i in services.clipboard.search(user_id, q)]


@router.get("/{user_id}/stats")
def stats(user_id: int, services: Services = Depends(get_services)):
    return services.clipboard.get_stats(user_id)


@router.post("/{user_id}/{item_id}/pin")
def toggle_pin(user_id: int, item_id: str, services: Services = Depends(get_services)):
    try:
        pinned = services.clipboard.toggle_pin(user_id, item_id)
    except ClipboardLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if pinned is None:
        raise HTTPException(status_code=404, detail="Clipboard item not found")
    return {"id": item_id, "pinned": pinned}


@router.delete("/{user_id}/{item_id}")
def delete_item(user_id: int, item_id: str, services: Services = Depends(get_services)):
    if not services.clipboard.delete_item(user_id, item_id):
        raise HTTPException(status_code=404, detail="Clipboard item not found")
    return {"deleted": item_id}


@router.delete("/{user_id}")
def clear(user_id: int, services: Services = Depends(get_services)):
    return {"cleared": services.clipboard.clear_history(user_id)}
