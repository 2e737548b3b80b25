"""
Integration tests for user notifications and admin broadcasts.
"""

import pytest

from conftest import create_admin


@pytest.mark.asyncio
async def test_mark_read_and_unread_filter(client, parties, package):
    headers = parties["recipient"]["headers"]
    notification = (await client.get("/v1/notifications", headers=headers)).json()[0]
    assert notification["is_read"] is False

    response = await client.patch(f"/v1/notifications/{notification['id']}/read", headers=headers)

    assert response.status_code == 200
    unread = (await client.get("/v1/notifications?unread_only=true", headers=headers)).json()
    assert unread == []
    everything = (await client.get("/v1/notifications", headers=headers)).json()
    assert everything[0]["read_at"] is not None


@pytest.mark.asyncio
async def test_cannot_touch_someone_elses_notification(client, parties, package):
    notification = (await client.get("/v1/notifications", headers=parties["recipient"]["headers"])).json()[0]

    read = await client.patch(f"/v1/notifications/{notification['id']}/read", headers=parties["sender"]["headers"])
    delete = await client.delete(f"/v1/notifications/{notification['id']}", headers=parties["sender"]["headers"])

    assert read.status_code == 404
    assert delete.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read_and_delete(client, parties):
    for title in ("One", "Two"):
        await client.post("/v1/packages", json={
            "recipient_email": parties["recipient"]["email"], "title": title
        }, headers=parties["sender"]["headers"])
    headers = parties["recipient"]["headers"]

    marked = await client.patch("/v1/notifications/read-all", headers=headers)
    assert marked.json()["count"] == 2

    notification_id = (await client.get("/v1/notifications", headers=headers)).json()[0]["id"]
    deleted = await client.delete(f"/v1/notifications/{notification_id}", headers=headers)

    assert deleted.status_code == 200
    assert len((await client.get("/v1/notifications", headers=headers)).json()) == 1


@pytest.mark.asyncio
async def test_admin_broadcast_by_role(client, parties):
    admin = await create_admin(client)

    response = await client.post("/v1/admin/notifications/broadcast", json={
        "role_filter": "courier",
        "title": "Depot closed",
        "message": "The central depot is closed on Sunday"
    }, headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["recipients"] == 2
    courier_inbox = (await client.get("/v1/notifications", headers=parties["courier"]["headers"])).json()
    sender_inbox = (await client.get("/v1/notifications", headers=parties["sender"]["headers"])).json()
    assert courier_inbox[0]["title"] == "Depot closed"
    assert sender_inbox == []


@pytest.mark.asyncio
async def test_broadcast_to_everyone(client, parties):
    admin = await create_admin(client)

    response = await client.post("/v1/admin/notifications/broadcast", json={
        "title": "Maintenance", "message": "Tonight 2am"
    }, headers=admin["headers"])

    # four parties plus the admin
    assert response.json()["recipients"] == 5


@pytest.mark.asyncio
async def test_broadcast_is_admin_only(client, parties):
    response = await client.post("/v1/admin/notifications/broadcast", json={
        "title": "Spam", "message": "Spam"
    }, headers=parties["sender"]["headers"])

    assert response.status_code == 403
