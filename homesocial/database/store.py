"""
Data-access client for every HomeSocial table.

One instance wraps the asyncpg pool and is handed to the services through
FastAPI dependencies. Multi-row writes (listing + media + publish, thread +
members, listing edit + media changes) each run inside a single transaction.
"""

import asyncio
import functools
import json
import logging
from typing import Any, List

import asyncpg  # type: ignore

from homesocial.database.query_builder import QueryBuilder
from homesocial.errors import BackendError

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MEDIA_JSON = """
    COALESCE(
        json_agg(
            json_build_object(
                'id', m.id,
                'listing_id', m.listing_id,
                'type', m.type,
                'storage_bucket', m.storage_bucket,
                'storage_path', m.storage_path,
                'thumbnail_path', m.thumbnail_path,
                'sort_order', m.sort_order
            ) ORDER BY m.sort_order
        ) FILTER (WHERE m.id IS NOT NULL),
        '[]'
    ) AS media
"""


def remote_call(func):
    """Log and re-raise database failures as BackendError carrying the raw message."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"{func.__name__} failed: {type(e).__name__}: {e}", exc_info=True)
            raise BackendError(str(e)) from e

    return wrapper


def _listing_with_media(row) -> dict:
    listing = dict(row)
    media = listing.get("media")
    if isinstance(media, str):
        media = json.loads(media)
    listing["media"] = media or []
    return listing


class HomeSocialStore:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    # ---------------------------
    # Profiles
    # ---------------------------
    @remote_call
    async def get_profile(self, user_id: str) -> dict | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM profiles WHERE id = $1", user_id)
            return dict(row) if row else None

    @remote_call
    async def upsert_profile(self, data: dict) -> dict:
        query, values = QueryBuilder.build_upsert_query(data, "profiles", "id")
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *values)
            return dict(row)

    # ---------------------------
    # Listings + media
    # ---------------------------
    @remote_call
    async def create_listing_with_media(self, listing: dict, media: List[dict]) -> dict:
        """Insert the draft listing and its media rows, then publish it, atomically."""
        draft = {**listing, "status": "draft"}
        insert_query, insert_values = QueryBuilder.build_insert_query(draft, "listings", returning="id")

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                listing_id = await conn.fetchval(insert_query, *insert_values)

                for record in media:
                    media_query, media_values = QueryBuilder.build_insert_query(
                        {**record, "listing_id": listing_id}, "media", returning=None
                    )
                    await conn.execute(media_query, *media_values)

                publish_query, publish_values = QueryBuilder.build_update_query(
                    {"status": "active"}, "listings", {"id": listing_id}, returning="*"
                )
                row = await conn.fetchrow(publish_query, *publish_values)

        return dict(row)

    @remote_call
    async def get_listing(self, listing_id) -> dict | None:
        query = f"""
            SELECT l.*, {MEDIA_JSON}
            FROM listings l
            LEFT JOIN media m ON m.listing_id = l.id
            WHERE l.id = $1
            GROUP BY l.id
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, listing_id)
            return _listing_with_media(row) if row else None

    @remote_call
    async def list_active_listings(self, limit: int = 50) -> List[dict]:
        query = f"""
            SELECT l.*, {MEDIA_JSON}
            FROM listings l
            LEFT JOIN media m ON m.listing_id = l.id
            WHERE l.status = 'active'
            GROUP BY l.id
            ORDER BY l.created_at DESC
            LIMIT $1
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, limit)
            return [_listing_with_media(row) for row in rows]

    @remote_call
    async def list_owner_listings(self, owner_id: str) -> List[dict]:
        query = """
            SELECT id, title, price, city, state, zip, status, created_at
            FROM listings
            WHERE owner_id = $1
            ORDER BY created_at DESC
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, owner_id)
            return [dict(row) for row in rows]

    @remote_call
    async def update_listing_with_media(
        self,
        listing_id,
        owner_id: str,
        fields: dict,
        remove_media_ids: List[Any],
        add_media: List[dict],
        sort_orders: dict,
    ) -> dict | None:
        """
        Write the full editable field set and apply media changes in one transaction.

        Returns None (and writes nothing) when the listing is not owned by owner_id.
        """
        update_query, update_values = QueryBuilder.build_update_query(
            fields, "listings", {"id": listing_id, "owner_id": owner_id}, returning="*"
        )

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(update_query, *update_values)
                if row is None:
                    return None

                if remove_media_ids:
                    await conn.execute(
                        "DELETE FROM media WHERE listing_id = $1 AND id = ANY($2::uuid[])",
                        listing_id,
                        [str(media_id) for media_id in remove_media_ids],
                    )

                if sort_orders:
                    await conn.executemany(
                        "UPDATE media SET sort_order = $1 WHERE id = $2 AND listing_id = $3",
                        [(order, str(media_id), listing_id) for media_id, order in sort_orders.items()],
                    )

                for record in add_media:
                    media_query, media_values = QueryBuilder.build_insert_query(
                        {**record, "listing_id": listing_id}, "media", returning=None
                    )
                    await conn.execute(media_query, *media_values)

        return dict(row)

    # ---------------------------
    # Comments
    # ---------------------------
    @remote_call
    async def list_comments(self, listing_id, limit: int = 50) -> List[dict]:
        query = """
            SELECT c.id, c.listing_id, c.user_id, c.body, c.created_at,
                   p.full_name AS author_name
            FROM comments c
            LEFT JOIN profiles p ON p.id = c.user_id
            WHERE c.listing_id = $1
            ORDER BY c.created_at DESC
            LIMIT $2
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, listing_id, limit)
            return [dict(row) for row in rows]

    @remote_call
    async def insert_comment(self, listing_id, user_id: str, body: str) -> dict:
        query, values = QueryBuilder.build_insert_query(
            {"listing_id": listing_id, "user_id": user_id, "body": body}, "comments"
        )
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *values)
            return dict(row)

    # ---------------------------
    # Threads + messages
    # ---------------------------
    @remote_call
    async def find_thread(self, listing_id, user_id: str) -> dict | None:
        query = """
            SELECT t.*
            FROM threads t
            JOIN thread_members tm ON tm.thread_id = t.id
            WHERE t.listing_id = $1 AND tm.user_id = $2
            ORDER BY t.created_at DESC
            LIMIT 1
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, listing_id, user_id)
            return dict(row) if row else None

    @remote_call
    async def create_thread(self, listing_id, member_ids: List[str]) -> dict:
        thread_query, thread_values = QueryBuilder.build_insert_query(
            {"listing_id": listing_id}, "threads"
        )
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                thread = await conn.fetchrow(thread_query, *thread_values)
                await conn.executemany(
                    "INSERT INTO thread_members (thread_id, user_id) VALUES ($1, $2)",
                    [(thread["id"], member_id) for member_id in member_ids],
                )
        return dict(thread)

    @remote_call
    async def list_threads_for_user(self, user_id: str) -> List[dict]:
        # Ordered by the thread's own creation time, not the membership row's
        query = """
            SELECT t.id AS thread_id, t.created_at, t.listing_id, l.title
            FROM thread_members tm
            JOIN threads t ON t.id = tm.thread_id
            LEFT JOIN listings l ON l.id = t.listing_id
            WHERE tm.user_id = $1
            ORDER BY t.created_at DESC
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, user_id)
            return [dict(row) for row in rows]

    @remote_call
    async def is_thread_member(self, thread_id, user_id: str) -> bool:
        async with self.pool.acquire() as conn:
            found = await conn.fetchval(
                "SELECT 1 FROM thread_members WHERE thread_id = $1 AND user_id = $2",
                thread_id,
                user_id,
            )
            return found is not None

    @remote_call
    async def get_message(self, message_id) -> dict | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, thread_id, sender_id, body, created_at FROM messages WHERE id = $1",
                message_id,
            )
            return dict(row) if row else None

    @remote_call
    async def list_messages(self, thread_id, limit: int = 200) -> List[dict]:
        # newest `limit` messages, returned oldest first
        query = """
            SELECT * FROM (
                SELECT id, thread_id, sender_id, body, created_at
                FROM messages
                WHERE thread_id = $1
                ORDER BY created_at DESC
                LIMIT $2
            ) recent
            ORDER BY created_at ASC
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, thread_id, limit)
            return [dict(row) for row in rows]

    @remote_call
    async def insert_message(self, thread_id, sender_id: str, body: str) -> dict:
        """Append a message whose created_at is strictly after every earlier one in the thread."""
        query = """
            INSERT INTO messages (thread_id, sender_id, body, created_at)
            VALUES (
                $1, $2, $3,
                GREATEST(
                    clock_timestamp(),
                    COALESCE(
                        (SELECT MAX(created_at) FROM messages WHERE thread_id = $1)
                            + INTERVAL '1 microsecond',
                        clock_timestamp()
                    )
                )
            )
            RETURNING id, thread_id, sender_id, body, created_at
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                # serialize concurrent senders on the same thread
                await conn.execute("SELECT 1 FROM threads WHERE id = $1 FOR UPDATE", thread_id)
                row = await conn.fetchrow(query, thread_id, sender_id, body)
        return dict(row)
