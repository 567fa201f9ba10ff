import uuid

import pytest

from fakes import BUYER, OWNER, auth_headers
from factories import ListingCreateFactory
from homesocial.services import listing_service


@pytest.fixture
async def listing_id(store, storage):
    created = await listing_service.compose_listing(
        store, storage, OWNER, ListingCreateFactory.build(title="Lake House")
    )
    return created["id"]


async def test_comment_requires_sign_in(client, store, listing_id):
    response = await client.post(
        f"/api/listings/{listing_id}/comments", json={"body": "Is the dock shared?"}
    )

    assert response.status_code == 401
    assert response.json()["redirect_to"] == "/login"
    assert store.comments == []


async def test_comment_with_expired_token_is_rejected(client, store, listing_id):
    response = await client.post(
        f"/api/listings/{listing_id}/comments",
        json={"body": "Is the dock shared?"},
        headers=auth_headers("expired-token"),
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired session"
    assert store.comments == []


async def test_post_comment_returns_refreshed_list(client, store, listing_id):
    await store.upsert_profile({"id": BUYER.uid, "full_name": "Bea Buyer"})
    await store.insert_comment(listing_id, OWNER.uid, "Open house on Sunday.")

    response = await client.post(
        f"/api/listings/{listing_id}/comments",
        json={"body": "  Is the dock shared?  "},
        headers=auth_headers("buyer-token"),
    )

    assert response.status_code == 201
    comments = response.json()["comments"]
    assert [c["body"] for c in comments] == ["Is the dock shared?", "Open house on Sunday."]
    assert comments[0]["user_id"] == BUYER.uid
    assert comments[0]["author_name"] == "Bea Buyer"
    assert comments[1]["author_name"] is None


async def test_blank_comment_is_rejected(client, store, listing_id):
    response = await client.post(
        f"/api/listings/{listing_id}/comments",
        json={"body": "   "},
        headers=auth_headers("buyer-token"),
    )

    assert response.status_code == 422
    assert store.comments == []


async def test_comment_on_missing_listing(client, store):
    response = await client.post(
        f"/api/listings/{uuid.uuid4()}/comments",
        json={"body": "Hello?"},
        headers=auth_headers("buyer-token"),
    )

    assert response.status_code == 404
    assert store.comments == []


async def test_comment_list_is_capped_at_fifty(client, store, listing_id):
    for i in range(55):
        await store.insert_comment(listing_id, OWNER.uid, f"update {i}")

    response = await client.get(f"/api/listings/{listing_id}")

    comments = response.json()["comments"]
    assert len(comments) == 50
    assert comments[0]["body"] == "update 54"
