import logging
import os

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from firebase_admin import auth as firebase_auth  # type: ignore
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from homesocial.services.auth_service import get_firebase_app

logger = logging.getLogger(__name__)

storage_uri = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")


def get_user_or_ip(request: Request) -> str:
    """
    Get unique identifier for rate limiting.
    Verify Firebase token and extract UID, or fallback to IP.
    """
    auth_header = request.headers.get("Authorization")

    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split("Bearer ")[1]
        try:
            decoded_token = firebase_auth.verify_id_token(token, app=get_firebase_app())
            return f"user:{decoded_token['uid']}"
        except Exception as e:
            # Invalid token: limit by IP like any anonymous caller
            logger.debug(f"Rate limit key falls back to IP: {type(e).__name__}")

    return f"ip:{get_remote_address(request)}"


# Universal limiter: Uses user UID for authenticated requests, IP for anonymous
limiter = Limiter(
    key_func=get_user_or_ip,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri=storage_uri,
)


def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    retry_seconds = 60  # Default to 60 seconds

    # Extract time period from detail (e.g., "1 minute", "1 hour")
    if "minute" in str(exc.detail):
        retry_seconds = 60
    elif "hour" in str(exc.detail):
        retry_seconds = 3600
    elif "day" in str(exc.detail):
        retry_seconds = 86400
    elif "second" in str(exc.detail):
        retry_seconds = 1

    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": f"Too many requests. Please try again in {retry_seconds} seconds.",
            "retry_after": retry_seconds,
        },
        headers={"Retry-After": str(retry_seconds)},
    )
