"""
Integration tests for package creation, listing and non-transfer updates.
"""

import pytest
from sqlalchemy import select, func

from backend.app.models.notification import Notification
from backend.app.models.package import Package
from conftest import TestingSessionLocal, create_admin, register_user


@pytest.mark.asyncio
async def test_create_package(client, parties, package):
    assert package["status"] == "created"
    assert package["sender_id"] == parties["sender"]["user_id"]
    assert package["recipient_id"] == parties["recipient"]["user_id"]
    assert package["current_courier_id"] is None
    assert package["tracking_number"].startswith("TRK")
    assert len(package["tracking_number"]) == 13
    assert package["priority"] == "express"


@pytest.mark.asyncio
async def test_create_package_notifies_recipient(client, parties, package):
    response = await client.get("/v1/notifications", headers=parties["recipient"]["headers"])

    assert response.status_code == 200
    notifications = response.json()
    assert len(notifications) == 1
    assert notifications[0]["title"] == "New Package Created"
    assert notifications[0]["package_id"] == package["id"]


@pytest.mark.asyncio
async def test_tracking_numbers_are_unique(client, parties):
    codes = set()
    for i in range(5):
        response = await client.post("/v1/packages", json={
            "recipient_email": parties["recipient"]["email"],
            "title": f"Box {i}",
        }, headers=parties["sender"]["headers"])
        codes.add(response.json()["tracking_number"])

    assert len(codes) == 5


@pytest.mark.asyncio
async def test_unknown_recipient_persists_nothing(client, parties):
    response = await client.post("/v1/packages", json={
        "recipient_email": "nobody@example.com",
        "title": "Lost cause",
    }, headers=parties["sender"]["headers"])

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"

    async with TestingSessionLocal() as session:
        assert (await session.execute(select(func.count(Package.id)))).scalar() == 0
        assert (await session.execute(select(func.count(Notification.id)))).scalar() == 0


@pytest.mark.asyncio
async def test_negative_weight_rejected(client, parties):
    response = await client.post("/v1/packages", json={
        "recipient_email": parties["recipient"]["email"],
        "title": "Anti-matter",
        "weight": -1,
    }, headers=parties["sender"]["headers"])

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_001"

    async with TestingSessionLocal() as session:
        assert (await session.execute(select(func.count(Package.id)))).scalar() == 0


@pytest.mark.asyncio
async def test_non_finite_value_rejected(client, parties):
    response = await client.post(
        "/v1/packages",
        content='{"recipient_email": "recipient1@example.com", "title": "Priceless", "value": NaN}',
        headers={**parties["sender"]["headers"], "Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_create_requires_auth(client):
    response = await client.post("/v1/packages", json={"recipient_email": "a@example.com", "title": "x"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_courier_cannot_create_package(client, parties):
    response = await client.post("/v1/packages", json={
        "recipient_email": parties["recipient"]["email"], "title": "Side job"
    }, headers=parties["courier"]["headers"])

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"


@pytest.mark.asyncio
async def test_get_package_visibility(client, parties, package):
    outsider = await register_user(client, "outsider")
    admin = await create_admin(client)
    url = f"/v1/packages/{package['id']}"

    assert (await client.get(url, headers=parties["sender"]["headers"])).status_code == 200
    assert (await client.get(url, headers=parties["recipient"]["headers"])).status_code == 200
    assert (await client.get(url, headers=admin["headers"])).status_code == 200

    forbidden = await client.get(url, headers=outsider["headers"])
    assert forbidden.status_code == 403
    assert forbidden.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_get_missing_package(client, parties):
    response = await client.get("/v1/packages/999", headers=parties["sender"]["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_packages_by_role(client, parties, package):
    sender_view = await client.get("/v1/packages?role=sender", headers=parties["sender"]["headers"])
    recipient_as_sender = await client.get("/v1/packages?role=sender", headers=parties["recipient"]["headers"])
    recipient_view = await client.get("/v1/packages", headers=parties["recipient"]["headers"])
    courier_view = await client.get("/v1/packages", headers=parties["courier"]["headers"])

    assert sender_view.json()["total"] == 1
    assert recipient_as_sender.json()["total"] == 0
    assert recipient_view.json()["total"] == 1
    assert courier_view.json()["total"] == 0


@pytest.mark.asyncio
async def test_list_packages_by_status(client, parties, package):
    created = await client.get("/v1/packages?status=created", headers=parties["sender"]["headers"])
    delivered = await client.get("/v1/packages?status=delivered", headers=parties["sender"]["headers"])

    assert created.json()["total"] == 1
    assert delivered.json()["total"] == 0


@pytest.mark.asyncio
async def test_update_hashes(client, parties, package):
    response = await client.put(f"/v1/packages/{package['id']}", json={
        "blockchain_hash": "0xdeadbeef",
        "ipfs_hash": "QmHash"
    }, headers=parties["sender"]["headers"])

    assert response.status_code == 200
    assert response.json()["blockchain_hash"] == "0xdeadbeef"
    assert response.json()["ipfs_hash"] == "QmHash"
    assert response.json()["status"] == "created"


@pytest.mark.asyncio
async def test_update_does_not_append_transfer(client, parties, package):
    await client.put(f"/v1/packages/{package['id']}", json={"status": "pending_pickup"},
                     headers=parties["sender"]["headers"])

    transfers = await client.get(f"/v1/packages/{package['id']}/transfers",
                                 headers=parties["sender"]["headers"])

    assert transfers.json()["total"] == 0


@pytest.mark.asyncio
async def test_update_status_forward_and_cancel(client, parties, package):
    url = f"/v1/packages/{package['id']}"
    headers = parties["recipient"]["headers"]

    pending = await client.put(url, json={"status": "pending_pickup"}, headers=headers)
    cancelled = await client.put(url, json={"status": "cancelled"}, headers=headers)
    reopened = await client.put(url, json={"status": "pending_pickup"}, headers=headers)

    assert pending.json()["status"] == "pending_pickup"
    assert cancelled.json()["status"] == "cancelled"
    assert reopened.status_code == 409
    assert reopened.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_update_status_cannot_go_backwards(client, parties, package):
    url = f"/v1/packages/{package['id']}"
    await client.put(url, json={"status": "out_for_delivery"}, headers=parties["sender"]["headers"])

    response = await client.put(url, json={"status": "pending_pickup"}, headers=parties["sender"]["headers"])

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_to_delivered_stamps_actual_delivery(client, parties, package):
    response = await client.put(f"/v1/packages/{package['id']}", json={"status": "delivered"},
                                headers=parties["sender"]["headers"])

    assert response.status_code == 200
    assert response.json()["actual_delivery"] is not None


@pytest.mark.asyncio
async def test_courier_cannot_update_package(client, parties, package):
    response = await client.put(f"/v1/packages/{package['id']}", json={"ipfs_hash": "Qm"},
                                headers=parties["courier"]["headers"])

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_package_changes_are_audited(client, parties, package):
    admin = await create_admin(client)

    response = await client.get(f"/v1/admin/audit-logs?package_id={package['id']}", headers=admin["headers"])

    actions = [log["action"] for log in response.json()["logs"]]
    assert "PACKAGE_CREATED" in actions
