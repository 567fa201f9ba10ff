import logging

from fastapi import Depends, Request, WebSocket
from starlette.requests import HTTPConnection

from homesocial.dependencies import get_auth_client
from homesocial.errors import SignInRequired
from homesocial.models.auth import SessionUser

logger = logging.getLogger(__name__)


def bearer_token(connection: HTTPConnection) -> str | None:
    auth_header = connection.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split("Bearer ", 1)[1].strip() or None


async def require_session(request: Request, auth_client=Depends(get_auth_client)) -> SessionUser:
    """
    Session gate for protected routes.

    A missing header, a bad token and a failed verification are all the same
    outcome: SignInRequired, which the client turns into a redirect to /login.
    """
    token = bearer_token(request)
    if token is None:
        raise SignInRequired()

    try:
        return await auth_client.verify_session(token)
    except Exception as e:
        # Don't expose Firebase error details to user
        logger.info(f"Session check failed: {type(e).__name__}")
        raise SignInRequired("Invalid or expired session")


async def optional_session(request: Request, auth_client=Depends(get_auth_client)) -> SessionUser | None:
    try:
        return await require_session(request, auth_client)
    except SignInRequired:
        return None


async def websocket_session(
    websocket: WebSocket, token: str | None = None, auth_client=Depends(get_auth_client)
) -> SessionUser | None:
    """
    Session for a websocket handshake.

    Browsers can't set headers on a websocket, so the ID token may also come as
    the `token` query parameter. None means the socket should be closed.
    """
    token = token or bearer_token(websocket)
    if not token:
        return None

    try:
        return await auth_client.verify_session(token)
    except Exception as e:
        logger.info(f"Websocket session check failed: {type(e).__name__}")
        return None
