import logging

from homesocial.models.auth import SessionUser
from homesocial.models.profile import ProfileUpdate

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

PROFILE_FIELDS = ("full_name", "role", "bio", "service_area")


def blank_profile() -> dict:
    return {"full_name": None, "role": "buyer", "bio": None, "service_area": None}


async def load_profile(store, user: SessionUser) -> dict:
    """The caller's profile, or a blank form when none has been saved yet."""
    row = await store.get_profile(user.uid)
    if row is None:
        return {"id": user.uid, "email": user.email, "exists": False, **blank_profile()}
    return {
        "id": row["id"],
        "email": row.get("email"),
        "exists": True,
        **{field: row.get(field) for field in PROFILE_FIELDS},
    }


async def save_profile(store, user: SessionUser, profile: ProfileUpdate) -> dict:
    """Upsert keyed by user id with the full field set."""
    data = {"id": user.uid, "email": user.email, **profile.model_dump()}
    row = await store.upsert_profile(data)
    logger.info(f"Saved profile for user {user.uid} (role={profile.role})")
    return {
        "message": "Saved.",
        "profile": {
            "id": row["id"],
            "email": row.get("email"),
            "exists": True,
            **{field: row.get(field) for field in PROFILE_FIELDS},
        },
    }
