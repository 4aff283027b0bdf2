from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query, Response

from momente.core.dependencies import EventServiceDependency
from momente.schemas.event import Event

router = APIRouter(tags=["events"])


@router.get("/events", response_model=List[Event])
async def list_events(response: Response, service: EventServiceDependency):
    result = await service.get_events()
    response.headers.update(result.headers)
    return result.data


@router.get("/events/search", response_model=List[Event])
async def search_events(
    response: Response,
    service: EventServiceDependency,
    q: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
):
    result = await service.search_events(q, category, date_from, date_to)
    response.headers.update(result.headers)
    return result.data


@router.get("/categories", response_model=List[str])
async def list_categories(response: Response, service: EventServiceDependency):
    result = await service.get_categories()
    response.headers.update(result.headers)
    return result.data


@router.get("/audiences", response_model=List[str])
async def list_audiences(
    response: Response, service: EventServiceDependency, refresh: bool = False
):
    result = await service.get_audiences(refresh=refresh)
    response.headers.update(result.headers)
    return result.data
