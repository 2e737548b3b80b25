"""
Integration tests for dispute handling.
"""

import pytest

from conftest import create_admin, register_user


def dispute_body(package_id, **overrides):
    body = {
        "package_id": package_id,
        "type": "damage",
        "title": "Screen cracked",
        "description": "Arrived with a cracked screen",
        "evidence_photos": ["QmEvidence1"],
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_party_creates_dispute_and_admins_are_notified(client, parties, package):
    admin = await create_admin(client)

    response = await client.post("/v1/disputes", json=dispute_body(package["id"]),
                                 headers=parties["recipient"]["headers"])

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "open"
    assert data["priority"] == "medium"
    assert data["tracking_number"] == package["tracking_number"]
    assert data["evidence_photos"] == ["QmEvidence1"]

    notifications = (await client.get("/v1/notifications", headers=admin["headers"])).json()
    assert notifications[0]["title"] == "New Dispute Created"
    assert notifications[0]["type"] == "warning"


@pytest.mark.asyncio
async def test_unrelated_user_cannot_dispute(client, package):
    outsider = await register_user(client, "outsider")

    response = await client.post("/v1/disputes", json=dispute_body(package["id"]), headers=outsider["headers"])

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_dispute_requires_description(client, parties, package):
    body = dispute_body(package["id"])
    del body["description"]

    response = await client.post("/v1/disputes", json=body, headers=parties["sender"]["headers"])

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_listing_visibility(client, parties, package):
    admin = await create_admin(client)
    outsider = await register_user(client, "outsider")
    await client.post("/v1/disputes", json=dispute_body(package["id"]), headers=parties["recipient"]["headers"])

    assert (await client.get("/v1/disputes", headers=admin["headers"])).json()["total"] == 1
    # sender did not raise it but is party to the package
    assert (await client.get("/v1/disputes", headers=parties["sender"]["headers"])).json()["total"] == 1
    assert (await client.get("/v1/disputes", headers=outsider["headers"])).json()["total"] == 0


@pytest.mark.asyncio
async def test_list_filters(client, parties, package):
    headers = parties["sender"]["headers"]
    await client.post("/v1/disputes", json=dispute_body(package["id"], type="delay", priority="high"), headers=headers)
    await client.post("/v1/disputes", json=dispute_body(package["id"]), headers=headers)

    by_type = await client.get("/v1/disputes?type=delay", headers=headers)
    by_priority = await client.get("/v1/disputes?priority=medium", headers=headers)

    assert by_type.json()["total"] == 1
    assert by_priority.json()["total"] == 1


@pytest.mark.asyncio
async def test_get_dispute_access(client, parties, package):
    outsider = await register_user(client, "outsider")
    created = await client.post("/v1/disputes", json=dispute_body(package["id"]),
                                headers=parties["recipient"]["headers"])
    url = f"/v1/disputes/{created.json()['id']}"

    assert (await client.get(url, headers=parties["sender"]["headers"])).status_code == 200
    assert (await client.get(url, headers=outsider["headers"])).status_code == 403
    assert (await client.get("/v1/disputes/999", headers=outsider["headers"])).status_code == 404


@pytest.mark.asyncio
async def test_admin_moves_dispute_forward(client, parties, package):
    admin = await create_admin(client)
    created = await client.post("/v1/disputes", json=dispute_body(package["id"]),
                                headers=parties["recipient"]["headers"])
    url = f"/v1/disputes/{created.json()['id']}"

    investigating = await client.patch(url, json={"status": "investigating", "assigned_to": admin["user_id"]},
                                       headers=admin["headers"])
    resolved = await client.patch(url, json={"status": "resolved", "resolution": "Refund issued"},
                                  headers=admin["headers"])
    backwards = await client.patch(url, json={"status": "open"}, headers=admin["headers"])

    assert investigating.json()["status"] == "investigating"
    assert investigating.json()["assigned_to"] == admin["user_id"]
    assert resolved.json()["resolution"] == "Refund issued"
    assert backwards.status_code == 409


@pytest.mark.asyncio
async def test_creator_can_close_but_not_resolve(client, parties, package):
    headers = parties["recipient"]["headers"]
    created = await client.post("/v1/disputes", json=dispute_body(package["id"]), headers=headers)
    url = f"/v1/disputes/{created.json()['id']}"

    resolve = await client.patch(url, json={"status": "resolved"}, headers=headers)
    close = await client.patch(url, json={"status": "closed"}, headers=headers)
    reopen = await client.patch(url, json={"status": "investigating"}, headers=headers)

    assert resolve.status_code == 403
    assert close.status_code == 200
    assert close.json()["status"] == "closed"
    assert reopen.status_code == 403


@pytest.mark.asyncio
async def test_non_creator_party_cannot_update(client, parties, package):
    created = await client.post("/v1/disputes", json=dispute_body(package["id"]),
                                headers=parties["recipient"]["headers"])

    response = await client.patch(f"/v1/disputes/{created.json()['id']}", json={"resolution": "mine"},
                                  headers=parties["sender"]["headers"])

    assert response.status_code == 403
