"""
Shutterbox Backend — Albums, Shop and Order Endpoint Tests
============================================================

What:  HTTP tests for /api/albums, /api/products, /api/cart, /api/orders
       and /api/users/me/favorites.
How:   The real app via httpx ASGITransport with the DB session mocked
       (see conftest.test_client).

What we test:
    ✅ Orders: owner and admin read, anyone else 403; admin-only listing
    ✅ Cart requires a token; empty cart checkout → 400
    ✅ Hidden albums → 404; admin album create → 201
    ✅ Product search validation; download URL only in the admin view
    ✅ Favorites: add, duplicate → 409, remove
    ✅ Literal paths (/latest, /user/...) are not captured by /{id}
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from shutterbox.models.album import Album
from shutterbox.models.order import Order, OrderItem
from shutterbox.models.product import Product

CREATED = datetime(2026, 2, 1, tzinfo=timezone.utc)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_order(user_id, status="pending") -> Order:
    return Order(
        id=uuid.uuid4(),
        user_id=uuid.UUID(str(user_id)),
        type="digital",
        status=status,
        total_price=Decimal("15.00"),
        is_free_shipping=False,
        shipping_address={},
        items=[OrderItem(
            id=uuid.uuid4(),
            product_id=uuid.uuid4(),
            product_name="Misty Pines",
            product_type="digital",
            quantity=1,
            unit_price=Decimal("15.00"),
            selected_options={},
            download_link="https://cdn.example.com/dl/pines.tiff",
        )],
        created_at=CREATED,
        updated_at=CREATED,
    )


def make_product(**overrides) -> Product:
    data = dict(
        id=uuid.uuid4(),
        name="Misty Pines",
        description="Digital download",
        price=Decimal("15.00"),
        category="digital",
        stock=0,
        thumbnail_url="https://cdn.example.com/products/pines.jpg",
        tags=[],
        type="digital",
        is_featured=False,
        is_latest=True,
        is_on_sale=False,
        digital_file_url="https://cdn.example.com/dl/pines.tiff",
        print_sizes=[],
        paper_types=[],
        frame_options=[],
        created_at=CREATED,
        updated_at=CREATED,
    )
    data.update(overrides)
    return Product(**data)


# ══════════════════════════════════════════════════════════════════════════
# Orders
# ══════════════════════════════════════════════════════════════════════════

class TestOrderRoutes:

    @pytest.mark.asyncio
    async def test_owner_reads_own_order(self, test_client, mock_db_session, make_result, user_id, user_token):
        order = make_order(user_id)
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        response = await test_client.get(f"/api/orders/{order.id}", headers=bearer(user_token))

        assert response.status_code == 200
        assert response.json()["user_id"] == user_id
        assert response.json()["items"][0]["download_link"] is None

    @pytest.mark.asyncio
    async def test_other_users_order_403(self, test_client, mock_db_session, make_result, user_token):
        order = make_order(uuid.uuid4())
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        response = await test_client.get(f"/api/orders/{order.id}", headers=bearer(user_token))

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_admin_reads_any_order(self, test_client, mock_db_session, make_result, admin_token):
        order = make_order(uuid.uuid4(), status="paid")
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        response = await test_client.get(f"/api/orders/{order.id}", headers=bearer(admin_token))

        assert response.status_code == 200
        assert response.json()["items"][0]["download_link"] == "https://cdn.example.com/dl/pines.tiff"

    @pytest.mark.asyncio
    async def test_other_users_listing_403(self, test_client, mock_db_session, user_token):
        response = await test_client.get(f"/api/orders/user/{uuid.uuid4()}", headers=bearer(user_token))

        assert response.status_code == 403
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_own_listing(self, test_client, mock_db_session, make_result, user_id, user_token):
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(scalar=1),
            make_result(rows=[make_order(user_id)]),
        ])

        response = await test_client.get(f"/api/orders/user/{user_id}", headers=bearer(user_token))

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_user_cannot_list_all_orders(self, test_client, mock_db_session, user_token):
        response = await test_client.get("/api/orders", headers=bearer(user_token))

        assert response.status_code == 403
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_latest_not_captured_by_id(self, test_client, mock_db_session, make_result, admin_token):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[]))

        response = await test_client.get("/api/orders/latest", headers=bearer(admin_token))

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_checkout_empty_cart_400(self, test_client, mock_db_session, make_result, user_token):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[]))

        response = await test_client.post("/api/orders", json={}, headers=bearer(user_token))

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "cart"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_cannot_change_status(self, test_client, user_token):
        response = await test_client.put(
            f"/api/orders/{uuid.uuid4()}/status", json={"status": "paid"}, headers=bearer(user_token)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_status_422(self, test_client, admin_token):
        response = await test_client.put(
            f"/api/orders/{uuid.uuid4()}/status", json={"status": "refunded"}, headers=bearer(admin_token)
        )
        assert response.status_code == 422


# ══════════════════════════════════════════════════════════════════════════
# Cart
# ══════════════════════════════════════════════════════════════════════════

class TestCartRoutes:

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client, mock_db_session):
        response = await test_client.get("/api/cart")

        assert response.status_code == 401
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_cart(self, test_client, mock_db_session, make_result, user_token):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[]))

        response = await test_client.get("/api/cart", headers=bearer(user_token))

        assert response.status_code == 200
        assert response.json() == {"items": [], "item_count": 0, "subtotal": 0.0}

    @pytest.mark.asyncio
    async def test_add_unknown_product_404(self, test_client, mock_db_session, make_result, user_token):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        response = await test_client.put(
            "/api/cart/add", json={"product_id": str(uuid.uuid4())}, headers=bearer(user_token)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_quantity_bounds_422(self, test_client, user_token):
        response = await test_client.put(
            "/api/cart/add", json={"product_id": str(uuid.uuid4()), "quantity": 0}, headers=bearer(user_token)
        )
        assert response.status_code == 422


# ══════════════════════════════════════════════════════════════════════════
# Albums
# ══════════════════════════════════════════════════════════════════════════

class TestAlbumRoutes:

    @pytest.mark.asyncio
    async def test_hidden_album_404(self, test_client, mock_db_session, make_result):
        album = Album(
            id=uuid.uuid4(),
            title="Private",
            cover_image_url="https://cdn.example.com/c.jpg",
            tags=[],
            is_featured=False,
            is_hidden=True,
            photos=[],
        )
        mock_db_session.execute = AsyncMock(return_value=make_result(one=album))

        response = await test_client.get(f"/api/albums/{album.id}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_creates_album(self, test_client, mock_db_session, make_result, admin_token):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        response = await test_client.post(
            "/api/albums",
            json={"title": "Coastlines", "cover_image_url": "https://cdn.example.com/c.jpg", "tags": ["Sea"]},
            headers=bearer(admin_token),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Coastlines"
        assert body["tags"] == ["sea"]
        assert body["created_by"] is not None

    @pytest.mark.asyncio
    async def test_user_cannot_create_album(self, test_client, mock_db_session, user_token):
        response = await test_client.post(
            "/api/albums",
            json={"title": "Coastlines", "cover_image_url": "https://cdn.example.com/c.jpg"},
            headers=bearer(user_token),
        )

        assert response.status_code == 403
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_title_409(self, test_client, mock_db_session, make_result, admin_token):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=uuid.uuid4()))

        response = await test_client.post(
            "/api/albums",
            json={"title": "Coastlines", "cover_image_url": "https://cdn.example.com/c.jpg"},
            headers=bearer(admin_token),
        )

        assert response.status_code == 409
        assert response.json()["details"]["field"] == "title"


# ══════════════════════════════════════════════════════════════════════════
# Products
# ══════════════════════════════════════════════════════════════════════════

class TestProductRoutes:

    @pytest.mark.asyncio
    async def test_short_search_400(self, test_client):
        response = await test_client.get("/api/products?search=a")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_public_detail_hides_download_url(self, test_client, mock_db_session, make_result):
        product = make_product()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        response = await test_client.get(f"/api/products/{product.id}")

        assert response.status_code == 200
        assert response.json()["price"] == 15.0
        assert "digital_file_url" not in response.json()

    @pytest.mark.asyncio
    async def test_admin_full_view(self, test_client, mock_db_session, make_result, admin_token):
        product = make_product()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        response = await test_client.get(f"/api/products/{product.id}/full", headers=bearer(admin_token))

        assert response.status_code == 200
        assert response.json()["digital_file_url"] == "https://cdn.example.com/dl/pines.tiff"

    @pytest.mark.asyncio
    async def test_latest(self, test_client, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[make_product()]))

        response = await test_client.get("/api/products/latest")

        assert response.status_code == 200
        assert response.json()[0]["is_latest"] is True

    @pytest.mark.asyncio
    async def test_negative_price_422(self, test_client, admin_token):
        response = await test_client.post(
            "/api/products",
            json={
                "name": "Bad",
                "description": "Bad",
                "price": -1,
                "category": "prints",
                "thumbnail_url": "https://cdn.example.com/p.jpg",
                "type": "print",
            },
            headers=bearer(admin_token),
        )
        assert response.status_code == 422


# ══════════════════════════════════════════════════════════════════════════
# Favorites
# ══════════════════════════════════════════════════════════════════════════

class TestFavoriteRoutes:

    @pytest.mark.asyncio
    async def test_add(self, test_client, mock_db_session, make_result, user_token):
        photo_id = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[make_result(one=photo_id), make_result(one=None)])

        response = await test_client.put(
            "/api/users/me/favorites", json={"id": str(photo_id), "type": "photo"}, headers=bearer(user_token)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Added to favorites"

    @pytest.mark.asyncio
    async def test_duplicate_409(self, test_client, mock_db_session, make_result, user_id, user_token):
        photo_id = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[make_result(one=photo_id), make_result(one=user_id)])

        response = await test_client.put(
            "/api/users/me/favorites", json={"id": str(photo_id), "type": "photo"}, headers=bearer(user_token)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_unknown_type_422(self, test_client, user_token):
        response = await test_client.put(
            "/api/users/me/favorites", json={"id": str(uuid.uuid4()), "type": "album"}, headers=bearer(user_token)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_remove(self, test_client, mock_db_session, user_token):
        response = await test_client.delete(
            f"/api/users/me/favorites/{uuid.uuid4()}?type=product", headers=bearer(user_token)
        )

        assert response.status_code == 200
        assert response.json()["type"] == "product"

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.get("/api/users/me/favorites")
        assert response.status_code == 401
