from fastapi import APIRouter, Depends, Request

from homesocial.dependencies import get_store
from homesocial.middleware.auth import require_session
from homesocial.middleware.rate_limit import limiter
from homesocial.models.auth import SessionUser
from homesocial.models.profile import ProfileUpdate
from homesocial.services import profile_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
@limiter.limit("60/minute")
async def get_profile(
    request: Request,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    """The caller's profile, or a blank one with `exists: false` on first visit."""
    return await profile_service.load_profile(store, user)


@router.put("")
@limiter.limit("20/minute")
async def save_profile(
    request: Request,
    profile: ProfileUpdate,
    user: SessionUser = Depends(require_session),
    store=Depends(get_store),
):
    return await profile_service.save_profile(store, user, profile)
