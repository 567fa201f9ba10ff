"""
Listing composer, editor and owner listings.

Works the same way for create and edit:
1. Check ownership / validate before touching storage
2. Upload new media in parallel (outside any transaction)
3. Write every row change in ONE database transaction
4. On failure, delete whatever was uploaded; on success, delete blobs of removed media
"""

import asyncio
import logging
import uuid
from typing import List

from fastapi import UploadFile

from homesocial import routes
from homesocial.errors import ListingValidationError, NotFoundError, NotOwnerError
from homesocial.models.auth import SessionUser
from homesocial.models.listing import ListingCreate, ListingUpdate
from homesocial.services.feed_service import invalidate_feed_cache, media_url_resolver
from homesocial.services.media_selection import MediaSelection
from homesocial.utils.formatting import format_money

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_PHOTOS = 20
EDITABLE_FIELDS = (
    "title", "price", "beds", "baths", "sqft",
    "address", "city", "state", "zip", "description",
)


def storage_prefix(listing_id) -> str:
    return f"listing/{listing_id}"


def provided_files(files: List[UploadFile] | None) -> List[UploadFile]:
    """Browsers send an empty part when no file was picked; drop those."""
    return [f for f in files or [] if f is not None and f.filename]


def media_record(stored, sort_order: int) -> dict:
    return {
        "type": stored.type,
        "storage_bucket": stored.bucket,
        "storage_path": stored.path,
        "thumbnail_path": None,
        "sort_order": sort_order,
    }


async def discard_uploads(storage, stored_media) -> None:
    if stored_media:
        logger.info(f"Cleaning up {len(stored_media)} uploaded files")
    for stored in stored_media:
        await storage.delete(stored.bucket, stored.path)


async def upload_all(storage, uploads, path_prefix: str) -> list:
    """
    Upload (file, media_type) pairs in parallel, preserving order.

    If any upload fails, the ones that succeeded are deleted before the first
    error is re-raised.
    """
    results = await asyncio.gather(
        *[storage.upload(upload, media_type, path_prefix) for upload, media_type in uploads],
        return_exceptions=True,
    )
    stored = [result for result in results if not isinstance(result, BaseException)]
    failures = [result for result in results if isinstance(result, BaseException)]
    if failures:
        logger.error(f"{len(failures)} of {len(results)} uploads failed: {failures[0]}")
        await discard_uploads(storage, stored)
        raise failures[0]
    return stored


# ---------------------------
# Composer
# ---------------------------
async def compose_listing(
    store,
    storage,
    owner: SessionUser,
    listing: ListingCreate,
    video: UploadFile | None = None,
    photos: List[UploadFile] | None = None,
) -> dict:
    """Create a listing with its media and publish it (draft -> active) in one transaction."""
    videos = provided_files([video])
    photos = provided_files(photos)
    if len(photos) > MAX_PHOTOS:
        raise ListingValidationError(
            f"Maximum {MAX_PHOTOS} photos allowed per listing", {"photos": "Too many photos"}
        )

    listing_id = uuid.uuid4()
    logger.info(
        f"Creating listing {listing_id} for user {owner.uid} "
        f"with {len(videos)} video and {len(photos)} photos"
    )

    # video first so it takes sort_order 0
    uploads = [(f, "video") for f in videos] + [(f, "photo") for f in photos]
    stored = await upload_all(storage, uploads, storage_prefix(listing_id))
    media_rows = [media_record(item, index) for index, item in enumerate(stored)]

    first_photo = next((item for item in stored if item.type == "photo"), None)
    listing_row = {
        "id": listing_id,
        "owner_id": owner.uid,
        **listing.model_dump(),
        "thumbnail_url": storage.public_url(first_photo.bucket, first_photo.path) if first_photo else None,
    }

    try:
        created = await store.create_listing_with_media(listing_row, media_rows)
    except Exception:
        await discard_uploads(storage, stored)
        raise

    invalidate_feed_cache()
    logger.info(f"Published listing {listing_id} with {len(media_rows)} media")

    return {
        "id": str(listing_id),
        "status": created["status"],
        "media_count": len(media_rows),
        "message": "Listing published",
        "redirect_to": routes.listing_detail(listing_id),
    }


# ---------------------------
# Editor
# ---------------------------
async def load_owned_listing(store, user: SessionUser, listing_id) -> dict:
    listing = await store.get_listing(listing_id)
    if listing is None:
        raise NotFoundError("Listing not found.")
    if listing["owner_id"] != user.uid:
        raise NotOwnerError("You can't edit this listing. Only the owner of a listing can edit it.")
    return listing


async def load_listing_for_edit(store, storage, user: SessionUser, listing_id) -> dict:
    listing = await load_owned_listing(store, user, listing_id)
    selection = MediaSelection.from_media(
        listing["media"], media_url_resolver(storage), listing.get("thumbnail_url")
    )
    form = {field: listing.get(field) for field in EDITABLE_FIELDS}
    form.update(
        {
            "id": str(listing["id"]),
            "owner_id": listing["owner_id"],
            "status": listing["status"],
            "photo_urls": selection.photo_urls,
            "video_urls": selection.video_urls,
            "thumbnail_url": selection.thumbnail_url,
            "view_url": routes.listing_detail(listing["id"]),
        }
    )
    return form


def _apply_kept_urls(selection: MediaSelection, kept: List[str], media_type: str) -> None:
    """Remove media missing from `kept`, then adopt the requested order."""
    current = selection.photo_urls if media_type == "photo" else selection.video_urls
    unknown = [url for url in kept if url not in current]
    if unknown:
        raise ListingValidationError(
            f"Unknown {media_type} URL: {unknown[0]}", {f"{media_type}_urls": "Unknown media URL"}
        )

    for url in list(current):
        if url not in kept:
            if media_type == "photo":
                selection.remove_photo(url)
            else:
                selection.remove_video(url)

    ordered = list(dict.fromkeys(kept))
    if media_type == "photo":
        selection.photo_urls = ordered
    else:
        selection.video_urls = ordered


async def save_listing_edit(
    store,
    storage,
    user: SessionUser,
    listing_id,
    update: ListingUpdate,
    video: UploadFile | None = None,
    photos: List[UploadFile] | None = None,
) -> dict:
    """Re-save the full field set and reconcile media. Non-owners are rejected before any write."""
    current = await load_owned_listing(store, user, listing_id)

    url_for = media_url_resolver(storage)
    existing_by_url = {url_for(m): m for m in current["media"]}
    selection = MediaSelection.from_media(current["media"], url_for, current.get("thumbnail_url"))

    if update.photo_urls is not None:
        _apply_kept_urls(selection, update.photo_urls, "photo")
    if update.video_urls is not None:
        _apply_kept_urls(selection, update.video_urls, "video")
    if "thumbnail_url" in update.model_fields_set:
        selection.select_thumbnail(update.thumbnail_url)

    new_videos = provided_files([video])
    new_photos = provided_files(photos)
    if len(selection.photo_urls) + len(new_photos) > MAX_PHOTOS:
        raise ListingValidationError(
            f"Maximum {MAX_PHOTOS} photos allowed per listing", {"photos": "Too many photos"}
        )

    uploads = [(f, "video") for f in new_videos] + [(f, "photo") for f in new_photos]
    stored = await upload_all(storage, uploads, storage_prefix(listing_id))
    stored_by_url = {}
    for item in stored:
        url = storage.public_url(item.bucket, item.path)
        stored_by_url[url] = item
        if item.type == "photo":
            selection.add_photo(url)
        else:
            selection.add_video(url)

    # videos sort before photos
    final_urls = selection.video_urls + selection.photo_urls
    sort_orders = {}
    new_media = []
    for index, url in enumerate(final_urls):
        if url in existing_by_url:
            sort_orders[existing_by_url[url]["id"]] = index
        else:
            new_media.append(media_record(stored_by_url[url], index))
    removed = [m for url, m in existing_by_url.items() if url not in final_urls]

    fields = update.listing_fields()
    fields["thumbnail_url"] = selection.thumbnail_url

    try:
        row = await store.update_listing_with_media(
            listing_id,
            user.uid,
            fields,
            [m["id"] for m in removed],
            new_media,
            sort_orders,
        )
    except Exception:
        await discard_uploads(storage, stored)
        raise

    if row is None:
        # ownership changed underneath us; the owner filter matched nothing
        await discard_uploads(storage, stored)
        raise NotOwnerError("You can't edit this listing. Only the owner of a listing can edit it.")

    # Delete removed media from storage after the DB transaction succeeds
    for media in removed:
        await storage.delete(media["storage_bucket"], media["storage_path"])

    invalidate_feed_cache()
    logger.info(
        f"Updated listing {listing_id}: {len(new_media)} media added, {len(removed)} removed"
    )

    return {
        "success": True,
        "listing_id": str(listing_id),
        "message": "Listing updated successfully",
        "media_added": len(new_media),
        "media_removed": len(removed),
        "photo_urls": selection.photo_urls,
        "video_urls": selection.video_urls,
        "thumbnail_url": selection.thumbnail_url,
        "redirect_to": routes.listing_detail(listing_id),
    }


# ---------------------------
# Owner listings
# ---------------------------
async def list_owner_listings(store, user: SessionUser) -> List[dict]:
    rows = await store.list_owner_listings(user.uid)
    return [
        {
            **row,
            "id": str(row["id"]),
            "price_label": format_money(row.get("price")),
            "view_url": routes.listing_detail(row["id"]),
            "edit_url": routes.listing_edit(row["id"]),
        }
        for row in rows
    ]
