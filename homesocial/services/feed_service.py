"""
Public read side: the feed of active listings and the listing detail page.
"""

import logging
import os
from typing import Iterable, List

from async_lru import alru_cache

from homesocial import routes
from homesocial.errors import NotFoundError
from homesocial.services.media_selection import MediaSelection
from homesocial.services.social_service import load_comments
from homesocial.utils.formatting import format_money

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

FEED_LIMIT = 50
# The cache is per process. Publishing or editing clears it only on the instance
# that handled the write; other instances serve their cached feed for at most
# FEED_CACHE_TTL seconds longer.
FEED_CACHE_TTL = int(os.getenv("HOMESOCIAL_FEED_CACHE_TTL", "30"))

SEARCHABLE_FIELDS = ("title", "city", "state", "zip")


@alru_cache(maxsize=4, ttl=FEED_CACHE_TTL)
async def fetch_active_listings(store) -> tuple:
    """
    Newest active listings with their media.

    Cached so that typing into the search box filters the same fetched rows
    instead of re-querying. Publishing or editing a listing clears the cache.
    """
    rows = await store.list_active_listings(limit=FEED_LIMIT)
    logger.info(f"Fetched {len(rows)} active listings for the feed")
    return tuple(rows)


def invalidate_feed_cache() -> None:
    fetch_active_listings.cache_clear()


def filter_listings(rows: Iterable[dict], query: str | None) -> List[dict]:
    """Case-insensitive substring match on title, city, state or zip. Blank query keeps everything."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(rows)
    return [
        row
        for row in rows
        if any(needle in (row.get(field) or "").lower() for field in SEARCHABLE_FIELDS)
    ]


def select_hero(media: List[dict], url_for) -> dict | None:
    """First video, else first photo, else None (the client renders a placeholder)."""
    ordered = sorted(media or [], key=lambda m: m["sort_order"])
    for media_type in ("video", "photo"):
        first = next((m for m in ordered if m["type"] == media_type), None)
        if first is not None:
            return {"type": media_type, "url": url_for(first)}
    return None


def media_url_resolver(storage):
    return lambda media: storage.public_url(media["storage_bucket"], media["storage_path"])


def build_card(listing: dict, storage) -> dict:
    return {
        "id": str(listing["id"]),
        "title": listing["title"],
        "price": listing["price"],
        "price_label": format_money(listing["price"]),
        "beds": listing["beds"],
        "baths": listing["baths"],
        "sqft": listing.get("sqft"),
        "city": listing.get("city"),
        "state": listing.get("state"),
        "zip": listing.get("zip"),
        "created_at": listing["created_at"],
        "hero": select_hero(listing.get("media"), media_url_resolver(storage)),
        "detail_url": routes.listing_detail(listing["id"]),
    }


async def get_feed(store, storage, query: str | None = None) -> dict:
    rows = await fetch_active_listings(store)
    matches = filter_listings(rows, query)
    return {
        "query": (query or "").strip(),
        "count": len(matches),
        "listings": [build_card(row, storage) for row in matches],
    }


async def get_listing_detail(store, storage, listing_id) -> dict:
    listing = await store.get_listing(listing_id)
    if listing is None:
        raise NotFoundError("Listing not found.")

    url_for = media_url_resolver(storage)
    media = sorted(listing.get("media") or [], key=lambda m: m["sort_order"])
    media_out = [
        {
            "id": str(m["id"]),
            "type": m["type"],
            "sort_order": m["sort_order"],
            "url": url_for(m),
        }
        for m in media
    ]
    selection = MediaSelection.from_media(media, url_for, listing.get("thumbnail_url"))
    hero_video = next((m["url"] for m in media_out if m["type"] == "video"), None)

    comments = await load_comments(store, listing["id"])

    detail = {key: value for key, value in listing.items() if key != "media"}
    detail.update(
        {
            "id": str(listing["id"]),
            "price_label": format_money(listing.get("price")),
            "media": media_out,
            "hero_video_url": hero_video,
            "photos": [m for m in media_out if m["type"] == "photo"],
            "thumbnail_url": selection.thumbnail_url,
            "comments": comments,
            "edit_url": routes.listing_edit(listing["id"]),
        }
    )
    return detail
