from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from homesocial import routes
from homesocial.dependencies import get_auth_client
from homesocial.middleware.auth import optional_session, require_session
from homesocial.middleware.rate_limit import limiter
from homesocial.models.auth import Credentials, SessionUser


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup")
@limiter.limit("5/minute")
async def sign_up(request: Request, credentials: Credentials, auth_client=Depends(get_auth_client)):
    data = await auth_client.sign_up(credentials.email, credentials.password)
    return JSONResponse(
        status_code=201,
        content={
            "uid": data.get("localId"),
            "message": "Signup successful. Check email if confirmation is enabled, then sign in.",
        },
    )


@router.post("/signin")
@limiter.limit("10/minute")
async def sign_in(request: Request, credentials: Credentials, auth_client=Depends(get_auth_client)):
    """
    Exchange email/password for a Firebase ID token.

    The client sends the token as `Authorization: Bearer <id_token>` on every
    protected call and refreshes it before `expires_in` runs out.
    """
    data = await auth_client.sign_in(credentials.email, credentials.password)
    return {
        "uid": data.get("localId"),
        "email": data.get("email", credentials.email),
        "id_token": data.get("idToken"),
        "refresh_token": data.get("refreshToken"),
        "expires_in": int(data.get("expiresIn", 3600)),
        "redirect_to": routes.HOME,
    }


@router.post("/signout")
@limiter.limit("10/minute")
async def sign_out(
    request: Request,
    user: SessionUser = Depends(require_session),
    auth_client=Depends(get_auth_client),
):
    await auth_client.sign_out(user.uid)
    return {"message": "Signed out", "redirect_to": routes.LOGIN}


@router.get("/session")
@limiter.limit("120/minute")
async def get_session(request: Request, user: SessionUser | None = Depends(optional_session)):
    """Current signed-in user, or null. Clients poll this instead of subscribing to auth state."""
    if user is None:
        return {"user": None}
    return {"user": {"uid": user.uid, "email": user.email}}
