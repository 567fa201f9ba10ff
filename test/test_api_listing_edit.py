import json

import pytest

from fakes import OWNER, STRANGER, auth_headers
from factories import ListingCreateFactory, fake_uploadfile, fake_uploadfile_list, photo_parts
from homesocial.services import listing_service


@pytest.fixture
async def listing(store, storage):
    """A published listing with one video and three photos."""
    created = await listing_service.compose_listing(
        store,
        storage,
        OWNER,
        ListingCreateFactory.build(title="Lake House"),
        video=fake_uploadfile("tour.mp4", "video/mp4", b"video"),
        photos=fake_uploadfile_list(3),
    )
    return await store.get_listing(created["id"])


def photo_urls(listing, storage):
    return [
        storage.public_url(m["storage_bucket"], m["storage_path"])
        for m in listing["media"]
        if m["type"] == "photo"
    ]


def edit_form(listing, **changes):
    form = {
        "title": listing["title"],
        "price": str(listing["price"]),
        "beds": str(listing["beds"]),
        "baths": str(listing["baths"]),
        "sqft": str(listing["sqft"]),
        "address": listing["address"],
        "city": listing["city"],
        "state": listing["state"],
        "zip": listing["zip"],
        "description": listing["description"],
    }
    form.update(changes)
    return {"listing": json.dumps(form)}


async def test_owner_loads_edit_form(client, listing, storage):
    response = await client.get(
        f"/api/listings/{listing['id']}/edit", headers=auth_headers("owner-token")
    )

    assert response.status_code == 200
    form = response.json()
    urls = photo_urls(listing, storage)
    assert form["title"] == "Lake House"
    assert form["photo_urls"] == urls
    assert len(form["video_urls"]) == 1
    assert form["thumbnail_url"] == urls[0]
    assert form["view_url"] == f"/listing/{listing['id']}"


async def test_non_owner_cannot_load_edit_form(client, listing):
    response = await client.get(
        f"/api/listings/{listing['id']}/edit", headers=auth_headers("stranger-token")
    )

    assert response.status_code == 403
    assert response.json()["detail"] == (
        "You can't edit this listing. Only the owner of a listing can edit it."
    )


async def test_non_owner_update_changes_nothing(client, listing, store, storage):
    uploads_before = list(storage.uploaded)

    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, title="Stolen"),
        files=photo_parts(1),
        headers=auth_headers("stranger-token"),
    )

    assert response.status_code == 403
    after = await store.get_listing(listing["id"])
    assert after["title"] == "Lake House"
    assert after["owner_id"] == OWNER.uid
    assert after["media"] == listing["media"]
    assert storage.uploaded == uploads_before
    assert storage.deleted == []


async def test_update_missing_listing_returns_404(client):
    response = await client.put(
        "/api/listings/00000000-0000-0000-0000-000000000000",
        data={"listing": json.dumps({"title": "Anything"})},
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 404


async def test_owner_updates_fields(client, listing, store):
    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, title="Lake House, Renovated", price="525000", sqft="", state="nv"),
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Listing updated successfully"
    assert body["redirect_to"] == f"/listing/{listing['id']}"

    after = await store.get_listing(listing["id"])
    assert after["title"] == "Lake House, Renovated"
    assert str(after["price"]) == "525000"
    assert after["sqft"] is None
    assert after["state"] == "NV"
    assert after["status"] == "active"
    # media untouched when the form leaves the URL lists out
    assert after["media"] == listing["media"]


async def test_removing_thumbnail_photo_falls_back_to_next(client, listing, store, storage):
    urls = photo_urls(listing, storage)
    removed = next(m for m in listing["media"] if m["type"] == "photo")

    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, photo_urls=urls[1:]),
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["media_removed"] == 1
    assert body["photo_urls"] == urls[1:]
    assert body["thumbnail_url"] == urls[1]

    after = await store.get_listing(listing["id"])
    assert after["thumbnail_url"] == urls[1]
    assert [m["type"] for m in after["media"]] == ["video", "photo", "photo"]
    assert [m["sort_order"] for m in after["media"]] == [0, 1, 2]
    assert storage.deleted == [(removed["storage_bucket"], removed["storage_path"])]


async def test_reorder_select_thumbnail_and_add_photo(client, listing, store, storage):
    urls = photo_urls(listing, storage)
    reordered = [urls[2], urls[0], urls[1]]

    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, photo_urls=reordered, thumbnail_url=urls[1]),
        files=photo_parts(1),
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["media_added"] == 1
    assert body["media_removed"] == 0
    assert body["photo_urls"][:3] == reordered
    assert len(body["photo_urls"]) == 4
    assert body["thumbnail_url"] == urls[1]

    after = await store.get_listing(listing["id"])
    assert photo_urls(after, storage) == body["photo_urls"]


async def test_removing_every_photo_clears_thumbnail(client, listing, store):
    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, photo_urls=[], video_urls=[]),
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 200
    assert response.json()["thumbnail_url"] is None
    after = await store.get_listing(listing["id"])
    assert after["media"] == []
    assert after["thumbnail_url"] is None


async def test_unknown_media_url_is_rejected(client, listing, store, storage):
    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, photo_urls=["https://example.com/not-ours.jpg"]),
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 422
    assert "photo_urls" in response.json()["errors"]
    after = await store.get_listing(listing["id"])
    assert after["media"] == listing["media"]
    assert storage.deleted == []


async def test_failed_update_discards_new_uploads(client, listing, store, storage):
    store.fail_on.add("update_listing_with_media")
    uploaded_before = len(storage.uploaded)

    response = await client.put(
        f"/api/listings/{listing['id']}",
        data=edit_form(listing, title="Never saved"),
        files=photo_parts(2),
        headers=auth_headers("owner-token"),
    )

    assert response.status_code == 502
    new_objects = {(s.bucket, s.path) for s in storage.uploaded[uploaded_before:]}
    assert len(new_objects) == 2
    assert new_objects <= set(storage.deleted)
    after = await store.get_listing(listing["id"])
    assert after["title"] == "Lake House"


async def test_my_listings_shows_only_own_listings(client, listing, store, storage):
    await listing_service.compose_listing(store, storage, STRANGER, ListingCreateFactory.build())

    response = await client.get("/api/listings/mine", headers=auth_headers("owner-token"))

    assert response.status_code == 200
    rows = response.json()["listings"]
    assert [row["id"] for row in rows] == [str(listing["id"])]
    assert rows[0]["edit_url"] == f"/listing/{listing['id']}/edit"
    assert rows[0]["view_url"] == f"/listing/{listing['id']}"
    assert rows[0]["price_label"].startswith("$")


async def test_my_listings_requires_sign_in(client):
    response = await client.get("/api/listings/mine")

    assert response.status_code == 401
