"""Map routes - report pins inside a viewport."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from fillahole.core.context import AppContext, get_context
from fillahole.models.report import MapPin
from fillahole.services import map_service


router = APIRouter(prefix="/map", tags=["Map"])


@router.get("/pins", response_model=List[MapPin])
def map_pins(
    bounds: str = Query(..., description="Viewport as ne_lat,ne_lng,sw_lat,sw_lng"),
    category: Optional[str] = Query(None, description="Only pins of this category"),
    user_id: Optional[str] = Header(None, alias="X-User-ID", description="Viewer user ID"),
    ctx: AppContext = Depends(get_context),
):
    try:
        ne_lat, ne_lng, sw_lat, sw_lng = map_service.parse_bounds(bounds)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid bounds: {e}")
    return map_service.get_pins(ctx, user_id, ne_lat, ne_lng, sw_lat, sw_lng, category=category)
