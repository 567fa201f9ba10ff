"""
Firebase Authentication.

Token verification and sign-out (refresh token revocation) use the Admin SDK.
Password sign-up / sign-in are client-side operations in Firebase, so they go
through the Identity Toolkit REST API with the project's web API key.
"""

import asyncio
import logging
import os

import aiohttp
import firebase_admin  # type: ignore
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from homesocial.errors import AuthError, BackendError
from homesocial.models.auth import SessionUser

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

FIREBASE_CREDENTIALS_PATH = os.getenv(
    "FIREBASE_CREDENTIALS_PATH", "./homesocial-firebase-adminsdk.json"
)
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY")
IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error codes -> what the sign-in form shows
FIREBASE_ERROR_MESSAGES = {
    "EMAIL_EXISTS": "An account with this email already exists.",
    "EMAIL_NOT_FOUND": "Invalid email or password.",
    "INVALID_PASSWORD": "Invalid email or password.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
}


def get_firebase_app() -> firebase_admin.App:
    """Initialize Firebase Admin once; service account file if present, else ADC."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        if os.path.exists(FIREBASE_CREDENTIALS_PATH):
            cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
        else:
            cred = credentials.ApplicationDefault()
        return firebase_admin.initialize_app(cred)


def firebase_error_message(code: str) -> str:
    # codes may carry detail after a colon: "WEAK_PASSWORD : Password should be ..."
    key = code.split(":", 1)[0].strip()
    return FIREBASE_ERROR_MESSAGES.get(key, code)


class FirebaseAuthClient:
    def __init__(self, api_key: str | None = FIREBASE_WEB_API_KEY, timeout: int = 10):
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def verify_session(self, id_token: str) -> SessionUser:
        """Verify a Firebase ID token (signature, expiry, revocation)."""

        def _verify():
            return firebase_auth.verify_id_token(id_token, app=get_firebase_app(), check_revoked=True)

        loop = asyncio.get_running_loop()
        decoded = await loop.run_in_executor(None, _verify)
        return SessionUser(uid=decoded["uid"], email=decoded.get("email"))

    async def sign_up(self, email: str, password: str) -> dict:
        data = await self._identity_toolkit("signUp", email, password)
        logger.info(f"Created account {data.get('localId')}")
        return data

    async def sign_in(self, email: str, password: str) -> dict:
        data = await self._identity_toolkit("signInWithPassword", email, password)
        logger.info(f"User {data.get('localId')} signed in")
        return data

    async def sign_out(self, uid: str) -> None:
        """Revoke refresh tokens; ID tokens issued before now stop verifying."""

        def _revoke():
            firebase_auth.revoke_refresh_tokens(uid, app=get_firebase_app())

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _revoke)
        logger.info(f"User {uid} signed out")

    async def _identity_toolkit(self, action: str, email: str, password: str) -> dict:
        if not self.api_key:
            raise BackendError("FIREBASE_WEB_API_KEY is not configured")

        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{action}"
        payload = {"email": email, "password": password, "returnSecureToken": True}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, params={"key": self.api_key}, json=payload) as response:
                    data = await response.json()
                    if response.status != 200:
                        code = data.get("error", {}).get("message", "UNKNOWN_ERROR")
                        logger.warning(f"Firebase {action} rejected: {code}")
                        raise AuthError(firebase_error_message(code))
                    return data
        except asyncio.TimeoutError as e:
            logger.error(f"Firebase {action} timed out after {self.timeout.total}s")
            raise BackendError("Authentication service timed out") from e
        except (aiohttp.ClientError, ValueError) as e:
            logger.error(f"HTTP request error during Firebase {action}: {e}")
            raise BackendError(f"Authentication service unavailable: {e}") from e
