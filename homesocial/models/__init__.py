# Re-export all models for convenient imports
from homesocial.models.auth import Credentials, SessionUser
from homesocial.models.listing import ListingCreate, ListingStatus, ListingUpdate
from homesocial.models.profile import ProfileUpdate, Role
from homesocial.models.social import CommentCreate, MessageCreate

__all__ = [
    # Auth models
    "Credentials",
    "SessionUser",
    # Listing models
    "ListingCreate",
    "ListingUpdate",
    "ListingStatus",
    # Profile models
    "ProfileUpdate",
    "Role",
    # Comment / message models
    "CommentCreate",
    "MessageCreate",
]
