"""
Exceptions raised by the service layer.

Each carries the HTTP status the API answers with; `homesocial.main` registers a
single handler that renders them as JSON.
"""

from homesocial import routes


class HomeSocialError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_content(self) -> dict:
        return {"detail": self.message}


class ListingValidationError(HomeSocialError):
    """Form input violated the listing/profile/message shape."""

    status_code = 422

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_content(self) -> dict:
        return {"detail": self.message, "errors": self.field_errors}

    @classmethod
    def from_pydantic(cls, exc) -> "ListingValidationError":
        """Flatten a pydantic ValidationError into `field: message` pairs."""
        field_errors = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "form"
            field_errors.setdefault(field, error["msg"])
        message = "; ".join(f"{field}: {msg}" for field, msg in field_errors.items())
        return cls(message or "Invalid input", field_errors)


class SignInRequired(HomeSocialError):
    status_code = 401

    def __init__(self, message: str = "Sign in required"):
        super().__init__(message)

    def to_content(self) -> dict:
        return {"detail": self.message, "redirect_to": routes.LOGIN}


class NotOwnerError(HomeSocialError):
    status_code = 403


class NotMemberError(HomeSocialError):
    """Caller does not belong to the message thread."""

    status_code = 403


class NotFoundError(HomeSocialError):
    status_code = 404


class ConflictError(HomeSocialError):
    status_code = 409


class AuthError(HomeSocialError):
    """Sign-in / sign-up rejected by Firebase; message is Firebase's own."""

    status_code = 400


class BackendError(HomeSocialError):
    """A remote call (database, storage, auth) failed; message is surfaced as-is."""

    status_code = 502
