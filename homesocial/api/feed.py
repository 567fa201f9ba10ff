from fastapi import APIRouter, Depends, Query, Request

from homesocial.dependencies import get_storage, get_store
from homesocial.middleware.rate_limit import limiter
from homesocial.services import feed_service

router = APIRouter(tags=["feed"])


@router.get("/feed")
@limiter.limit("120/minute")
async def get_feed(
    request: Request,
    q: str | None = Query(None, max_length=200, description="Filter by title, city, state or zip"),
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    """
    Home feed: the 50 newest active listings, optionally filtered.

    Each card carries a hero (first video, else first photo, else null) and the
    detail page to open on click.
    """
    return await feed_service.get_feed(store, storage, q)
