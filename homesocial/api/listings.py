from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from homesocial.api.common import parse_form_json
from homesocial.dependencies import get_storage, get_store
from homesocial.middleware.auth import require_session
from homesocial.middleware.rate_limit import limiter
from homesocial.models.auth import SessionUser
from homesocial.models.listing import ListingCreate, ListingUpdate
from homesocial.models.social import CommentCreate
from homesocial.services import feed_service, listing_service, social_service


router = APIRouter(prefix="/listings", tags=["listings"])


@router.get("/mine")
@limiter.limit("60/minute")
async def get_my_listings(
    request: Request,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    """All listings owned by the signed-in user, newest first, with view/edit links."""
    listings = await listing_service.list_owner_listings(store, user)
    return {"listings": listings}


@router.post("")
@limiter.limit("15/hour")
async def create_listing(
    request: Request,
    listing: str = Form(...),
    video: UploadFile | None = File(None),
    photos: List[UploadFile] = File(default=[]),
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    """
    Create and publish a listing.

    `listing` is the JSON-encoded form; `video` is an optional single hero video
    and `photos` any number of images (up to 20). Responds 201 with the new id
    and the detail page to navigate to.
    """
    listing_data = parse_form_json(ListingCreate, listing)
    result = await listing_service.compose_listing(
        store, storage, user, listing_data, video=video, photos=photos
    )
    return JSONResponse(status_code=201, content=result)


@router.get("/{listing_id}")
@limiter.limit("120/minute")
async def get_listing(
    request: Request,
    listing_id: UUID,
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    """Listing with its media and the 50 most recent comments. Public."""
    return await feed_service.get_listing_detail(store, storage, listing_id)


@router.get("/{listing_id}/edit")
@limiter.limit("60/minute")
async def get_listing_for_edit(
    request: Request,
    listing_id: UUID,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    return await listing_service.load_listing_for_edit(store, storage, user, listing_id)


@router.put("/{listing_id}")
@limiter.limit("10/minute")
async def update_listing(
    request: Request,
    listing_id: UUID,
    listing: str = Form(...),
    video: UploadFile | None = File(None),
    photos: List[UploadFile] = File(default=[]),
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    """
    Save the listing edit form.

    Only the owner can update. The media arrays in `listing` say which existing
    photos/videos to keep and in which order; uploaded files are appended.
    """
    update = parse_form_json(ListingUpdate, listing)
    return await listing_service.save_listing_edit(
        store, storage, user, listing_id, update, video=video, photos=photos
    )


@router.post("/{listing_id}/comments")
@limiter.limit("30/minute")
async def post_comment(
    request: Request,
    listing_id: UUID,
    comment: CommentCreate,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    comments = await social_service.post_comment(store, user, listing_id, comment)
    return JSONResponse(status_code=201, content={"comments": comments})


@router.post("/{listing_id}/threads")
@limiter.limit("20/hour")
async def message_owner(
    request: Request,
    listing_id: UUID,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    """Start (or reopen) a conversation with the listing's owner."""
    result = await social_service.start_thread(store, user, listing_id)
    return JSONResponse(status_code=201 if result["created"] else 200, content=result)
