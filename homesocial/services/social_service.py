"""
Comments on listings and buyer/owner message threads.
"""

import logging
from typing import List

from homesocial import routes
from homesocial.errors import ConflictError, NotFoundError, NotMemberError
from homesocial.models.auth import SessionUser
from homesocial.models.social import CommentCreate, MessageCreate
from homesocial.utils.formatting import short_id

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

COMMENT_LIMIT = 50
MESSAGE_LIMIT = 200


def serialize_comment(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "listing_id": str(row["listing_id"]),
        "user_id": row["user_id"],
        "author_name": row.get("author_name"),
        "body": row["body"],
        "created_at": row["created_at"].isoformat(),
    }


def serialize_message(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "thread_id": str(row["thread_id"]),
        "sender_id": row["sender_id"],
        "body": row["body"],
        "created_at": row["created_at"].isoformat(),
    }


# ---------------------------
# Comments
# ---------------------------
async def load_comments(store, listing_id) -> List[dict]:
    """Up to 50 most recent comments, newest first, each with its author's display name."""
    rows = await store.list_comments(listing_id, limit=COMMENT_LIMIT)
    return [serialize_comment(row) for row in rows]


async def post_comment(store, user: SessionUser, listing_id, comment: CommentCreate) -> List[dict]:
    listing = await store.get_listing(listing_id)
    if listing is None:
        raise NotFoundError("Listing not found.")

    await store.insert_comment(listing_id, user.uid, comment.body)
    logger.info(f"User {user.uid} commented on listing {listing_id}")

    # refetch the whole list rather than appending locally
    return await load_comments(store, listing_id)


# ---------------------------
# Threads
# ---------------------------
async def start_thread(store, user: SessionUser, listing_id) -> dict:
    """
    Open (or reopen) the conversation between the caller and the listing's owner.

    Owners cannot message themselves; nothing is written in that case.
    """
    listing = await store.get_listing(listing_id)
    if listing is None:
        raise NotFoundError("Listing not found.")
    if listing["owner_id"] == user.uid:
        raise ConflictError("You are the owner of this listing.")

    thread = await store.find_thread(listing_id, user.uid)
    created = thread is None
    if created:
        thread = await store.create_thread(listing_id, [user.uid, listing["owner_id"]])
        logger.info(f"Created thread {thread['id']} for listing {listing_id} by {user.uid}")

    return {
        "thread_id": str(thread["id"]),
        "created": created,
        "redirect_to": routes.message_thread(thread["id"]),
    }


async def list_threads(store, user: SessionUser) -> List[dict]:
    rows = await store.list_threads_for_user(user.uid)
    return [
        {
            "thread_id": str(row["thread_id"]),
            "created_at": row["created_at"].isoformat(),
            "listing_id": str(row["listing_id"]) if row.get("listing_id") else None,
            "title": row.get("title"),
            "label": f"Thread: {short_id(row['thread_id'])}…",
            "url": routes.message_thread(row["thread_id"]),
        }
        for row in rows
    ]


# ---------------------------
# Messages
# ---------------------------
async def require_member(store, user: SessionUser, thread_id) -> None:
    if not await store.is_thread_member(thread_id, user.uid):
        raise NotMemberError("You are not a member of this thread.")


async def load_messages(store, user: SessionUser, thread_id) -> List[dict]:
    await require_member(store, user, thread_id)
    rows = await store.list_messages(thread_id, limit=MESSAGE_LIMIT)
    return [serialize_message(row) for row in rows]


async def send_message(store, broker, user: SessionUser, thread_id, message: MessageCreate) -> dict:
    await require_member(store, user, thread_id)

    row = await store.insert_message(thread_id, user.uid, message.body)
    payload = serialize_message(row)
    logger.info(f"User {user.uid} sent message {payload['id']} to thread {thread_id}")

    await broker.publish(payload)
    return payload
