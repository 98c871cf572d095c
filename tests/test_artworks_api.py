"""End-to-end tests for the /api/artworks routes over ASGITransport."""

import hashlib

import pytest

from artledger.services.auth_service import create_access_token

ABC123_SHA256 = hashlib.sha256(b"abc123").hexdigest()


def _auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user).access_token}"}


async def _upload(client, user, data=b"abc123", name="sunset.png", use_ledger="true"):
    return await client.post(
        "/api/artworks/upload",
        files={"file": (name, data, "image/png")},
        data={"use_ledger": use_ledger},
        headers=_auth(user),
    )


@pytest.mark.asyncio
async def test_seller_lists_and_buyer_purchases(client, seller, buyer):
    uploaded = await _upload(client, seller)
    assert uploaded.status_code == 200
    artwork = uploaded.json()
    assert artwork["content_hash"] == ABC123_SHA256
    assert artwork["is_listed_for_sale"] is False

    listed = await client.post(
        f"/api/artworks/{artwork['id']}/list",
        json={"price": 2.5},
        headers=_auth(seller),
    )
    assert listed.status_code == 200
    assert listed.json()["sale_price"] == 2.5

    marketplace = await client.get("/api/artworks/marketplace")
    assert [a["id"] for a in marketplace.json()] == [artwork["id"]]

    purchased = await client.post(
        f"/api/artworks/{artwork['id']}/purchase", headers=_auth(buyer)
    )
    assert purchased.status_code == 200
    body = purchased.json()
    assert body["success"] is True
    assert body["amount"] == 2.5

    mine = await client.get("/api/artworks/purchased", headers=_auth(buyer))
    assert [a["id"] for a in mine.json()] == [artwork["id"]]

    again = await client.post(
        f"/api/artworks/{artwork['id']}/purchase", headers=_auth(buyer)
    )
    assert again.status_code == 409
    assert again.json() == {"message": "You have already purchased this artwork"}


@pytest.mark.asyncio
async def test_duplicate_upload_returns_conflict(client, seller):
    assert (await _upload(client, seller)).status_code == 200
    duplicate = await _upload(client, seller, name="copy.png")
    assert duplicate.status_code == 409
    assert "message" in duplicate.json()


@pytest.mark.asyncio
async def test_upload_requires_authentication(client):
    response = await client.post(
        "/api/artworks/upload", files={"file": ("a.png", b"abc", "image/png")}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_upload_without_ledger(client, seller):
    response = await _upload(client, seller, data=b"plain", use_ledger="false")
    assert response.json()["transaction_id"] == "NOT_REGISTERED"


@pytest.mark.asyncio
async def test_verify_routes(client, seller):
    artwork = (await _upload(client, seller)).json()

    by_hash = await client.post("/api/artworks/verify", data={"file_hash": ABC123_SHA256})
    assert by_hash.json()["is_verified"] is True

    by_txn = await client.post(
        "/api/artworks/verify", data={"transaction_id": artwork["transaction_id"]}
    )
    assert by_txn.json()["artwork"]["id"] == artwork["id"]

    by_file = await client.post(
        "/api/artworks/verify", files={"file": ("x.png", b"abc123", "image/png")}
    )
    assert by_file.json()["is_verified"] is True

    unknown = await client.post("/api/artworks/verify", data={"file_hash": "0" * 64})
    assert unknown.status_code == 200
    assert unknown.json()["message"] == "Artwork not found in the system"

    empty = await client.post("/api/artworks/verify", data={})
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_role_checks(client, seller, buyer):
    artwork = (await _upload(client, seller)).json()

    buyer_lists = await client.post(
        f"/api/artworks/{artwork['id']}/list", json={"price": 1}, headers=_auth(buyer)
    )
    assert buyer_lists.status_code == 403

    seller_buys = await client.post(
        f"/api/artworks/{artwork['id']}/purchase", headers=_auth(seller)
    )
    assert seller_buys.status_code == 403

    buyer_stats = await client.get("/api/artworks/seller-stats", headers=_auth(buyer))
    assert buyer_stats.status_code == 403


@pytest.mark.asyncio
async def test_purchase_unlisted_returns_conflict(client, seller, buyer):
    artwork = (await _upload(client, seller)).json()
    response = await client.post(
        f"/api/artworks/{artwork['id']}/purchase", headers=_auth(buyer)
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Artwork is not available for purchase"


@pytest.mark.asyncio
async def test_list_missing_artwork_is_404(client, seller):
    response = await client.post(
        "/api/artworks/999/list", json={"price": 1}, headers=_auth(seller)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_download_and_public_image(client, seller, buyer):
    artwork = (await _upload(client, seller, name="My Sunset.PNG")).json()

    download = await client.get(
        f"/api/artworks/{artwork['id']}/download", headers=_auth(seller)
    )
    assert download.status_code == 200
    assert download.content == b"abc123"
    assert download.headers["content-type"] == "image/png"
    assert 'filename="My Sunset.png"' in download.headers["content-disposition"]

    forbidden = await client.get(
        f"/api/artworks/{artwork['id']}/download", headers=_auth(buyer)
    )
    assert forbidden.status_code == 403
    assert forbidden.json() == {
        "message": "You do not have permission to download this artwork"
    }

    image_url = artwork["image_url"].removeprefix("http://test")
    image = await client.get(image_url)
    assert image.status_code == 200
    assert image.content == b"abc123"

    exists = await client.get(f"{image_url}/exists")
    assert exists.json() == {"exists": True}

    missing = await client.get(f"/api/artworks/image/{artwork['id']}/nope.png")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_download_unknown_artwork_is_404(client, buyer):
    response = await client.get("/api/artworks/9999/download", headers=_auth(buyer))
    assert response.status_code == 404
    assert response.json() == {"message": "Artwork not found"}


@pytest.mark.asyncio
async def test_user_listing_and_seller_stats(client, seller):
    artwork = (await _upload(client, seller)).json()
    await client.post(
        f"/api/artworks/{artwork['id']}/list", json={"price": 3}, headers=_auth(seller)
    )

    mine = await client.get("/api/artworks/user", headers=_auth(seller))
    assert [a["id"] for a in mine.json()] == [artwork["id"]]

    stats = await client.get("/api/artworks/seller-stats", headers=_auth(seller))
    assert stats.json() == {"total_sales": 0, "total_revenue": 0.0, "listed_artworks": 1}


@pytest.mark.asyncio
async def test_placeholder_svg(client):
    response = await client.get("/api/placeholder/400/300/f0f0f0/666666?text=<b>Hi</b>")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert "fill='#f0f0f0'" in response.text
    assert "&lt;b&gt;Hi&lt;/b&gt;" in response.text
