"""
Tests for the assets and borrows API endpoints.
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient

from tests.factories import FixedAssetFactory

ASSETS_PREFIX = "/api/v1/assets"
BORROWS_PREFIX = "/api/v1/borrows"


@pytest_asyncio.fixture
async def asset_id(admin_client: AsyncClient) -> str:
    response = await admin_client.post(ASSETS_PREFIX, json=FixedAssetFactory(name="Laptop"))
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest_asyncio.fixture
async def staff_headers(admin_client: AsyncClient, test_user) -> dict:
    response = await admin_client.post(
        "/api/v1/auth/login", json={"email": "staff@school.edu", "password": "testpassword123"}
    )
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestAssets:
    @pytest.mark.asyncio
    async def test_create_and_get(self, admin_client: AsyncClient, asset_id):
        response = await admin_client.get(f"{ASSETS_PREFIX}/{asset_id}")
        assert response.status_code == 200
        assert response.json()["condition"] == "GOOD"

    @pytest.mark.asyncio
    async def test_duplicate_asset_number_conflict(self, admin_client: AsyncClient):
        body = FixedAssetFactory(asset_number="AST-777777")
        assert (await admin_client.post(ASSETS_PREFIX, json=body)).status_code == 201
        response = await admin_client.post(ASSETS_PREFIX, json=body)
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_list_by_condition(self, admin_client: AsyncClient, asset_id):
        await admin_client.post(ASSETS_PREFIX, json=FixedAssetFactory(condition="NEEDS_REPAIR"))
        response = await admin_client.get(ASSETS_PREFIX, params={"condition": "NEEDS_REPAIR"})
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_patch_null_condition_is_422(self, admin_client: AsyncClient, asset_id):
        response = await admin_client.patch(f"{ASSETS_PREFIX}/{asset_id}", json={"condition": None})
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

        response = await admin_client.get(f"{ASSETS_PREFIX}/{asset_id}")
        assert response.json()["condition"] == "GOOD"

    @pytest.mark.asyncio
    async def test_staff_cannot_delete(self, admin_client: AsyncClient, asset_id, staff_headers):
        response = await admin_client.delete(f"{ASSETS_PREFIX}/{asset_id}", headers=staff_headers)
        assert response.status_code == 403


class TestBorrowLifecycle:
    @pytest.mark.asyncio
    async def test_borrow_return_undo(self, admin_client: AsyncClient, asset_id, staff_headers):
        due = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
        response = await admin_client.post(
            BORROWS_PREFIX,
            json={"fixed_asset_id": asset_id, "expected_return_date": due, "note": "For class"},
            headers=staff_headers,
        )
        assert response.status_code == 201
        borrow = response.json()
        assert borrow["status"] == "BORROWED"
        assert borrow["is_overdue"] is False

        response = await admin_client.post(
            f"{BORROWS_PREFIX}/return",
            json={"borrow_id": borrow["id"], "condition": "NEEDS_REPAIR", "note": "Fan noisy"},
            headers=staff_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "RETURNED"
        assert response.json()["note"] == "For class | Returned: Fan noisy"

        response = await admin_client.get(f"{ASSETS_PREFIX}/{asset_id}")
        assert response.json()["condition"] == "NEEDS_REPAIR"

        response = await admin_client.post(f"{BORROWS_PREFIX}/{borrow['id']}/undo-return")
        assert response.status_code == 200
        assert response.json()["status"] == "BORROWED"
        assert response.json()["actual_return_date"] is None

    @pytest.mark.asyncio
    async def test_second_borrow_conflict(self, admin_client: AsyncClient, asset_id, staff_headers):
        assert (await admin_client.post(BORROWS_PREFIX, json={"fixed_asset_id": asset_id})).status_code == 201

        response = await admin_client.post(
            BORROWS_PREFIX, json={"fixed_asset_id": asset_id}, headers=staff_headers
        )
        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_BORROWED"

    @pytest.mark.asyncio
    async def test_damaged_asset_unavailable(self, admin_client: AsyncClient):
        created = await admin_client.post(ASSETS_PREFIX, json=FixedAssetFactory(condition="DAMAGED"))
        response = await admin_client.post(BORROWS_PREFIX, json={"fixed_asset_id": created.json()["id"]})
        assert response.status_code == 400
        assert response.json()["code"] == "ASSET_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_return_twice(self, admin_client: AsyncClient, asset_id):
        borrow = (await admin_client.post(BORROWS_PREFIX, json={"fixed_asset_id": asset_id})).json()
        await admin_client.post(f"{BORROWS_PREFIX}/return", json={"borrow_id": borrow["id"]})

        response = await admin_client.post(f"{BORROWS_PREFIX}/return", json={"borrow_id": borrow["id"]})
        assert response.status_code == 400
        assert response.json()["code"] == "NOT_BORROWED"

    @pytest.mark.asyncio
    async def test_delete_rules(self, admin_client: AsyncClient, asset_id):
        borrow = (await admin_client.post(BORROWS_PREFIX, json={"fixed_asset_id": asset_id})).json()

        response = await admin_client.delete(f"{ASSETS_PREFIX}/{asset_id}")
        assert response.status_code == 400
        assert response.json()["code"] == "ASSET_IN_USE"

        await admin_client.post(f"{BORROWS_PREFIX}/return", json={"borrow_id": borrow["id"]})
        response = await admin_client.delete(f"{BORROWS_PREFIX}/{borrow['id']}")
        assert response.status_code == 400
        assert response.json()["code"] == "CANNOT_DELETE_RETURNED"

    @pytest.mark.asyncio
    async def test_staff_cannot_lend_to_others(self, admin_client: AsyncClient, asset_id, staff_headers, admin_user):
        response = await admin_client.post(
            BORROWS_PREFIX, json={"fixed_asset_id": asset_id, "user_id": 424242}, headers=staff_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_overdue_filter(self, admin_client: AsyncClient, asset_id):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        await admin_client.post(BORROWS_PREFIX, json={"fixed_asset_id": asset_id, "expected_return_date": past})

        response = await admin_client.get(BORROWS_PREFIX, params={"overdue": True})
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["is_overdue"] is True
        assert data["items"][0]["status"] == "BORROWED"

    @pytest.mark.asyncio
    async def test_staff_only_sees_own_loans(self, admin_client: AsyncClient, asset_id, staff_headers):
        await admin_client.post(BORROWS_PREFIX, json={"fixed_asset_id": asset_id})

        response = await admin_client.get(BORROWS_PREFIX, headers=staff_headers)
        assert response.json()["total"] == 0

        response = await admin_client.get(BORROWS_PREFIX, params={"status": "BORROWED"})
        assert response.json()["total"] == 1
