"""
Concurrency Tests.

Two custodians acting on the same package must not both succeed with
conflicting moves.
"""

import pytest

from backend.app.domain.custody.custody_service import CustodyService


async def post_transfer(client, package_id, actor, to_email, transfer_type):
    return await client.post(
        f"/v1/packages/{package_id}/transfers",
        json={"to_user_email": to_email, "transfer_type": transfer_type},
        headers=actor["headers"],
    )


@pytest.mark.asyncio
async def test_transfer_locks_the_package_row(client, parties, package, mocker):
    spy = mocker.spy(CustodyService, "get_package")

    await post_transfer(client, package["id"], parties["sender"], parties["courier"]["email"], "pickup")

    assert spy.call_args.kwargs.get("for_update") is True


@pytest.mark.asyncio
async def test_double_delivery_only_one_wins(client, parties, package):
    pid = package["id"]
    await post_transfer(client, pid, parties["sender"], parties["courier"]["email"], "pickup")
    await post_transfer(client, pid, parties["courier"], parties["courier2"]["email"], "handoff")

    # courier2 (current) and courier1 (prior custodian) both try to deliver;
    # the loser's decision is re-checked against the locked row
    first = await post_transfer(client, pid, parties["courier2"], parties["recipient"]["email"], "delivery")
    second = await post_transfer(client, pid, parties["courier"], parties["recipient"]["email"], "delivery")

    assert first.status_code == 201
    assert second.status_code == 409
    history = (await client.get(f"/v1/packages/{pid}/transfers", headers=parties["sender"]["headers"])).json()
    assert [t["transfer_type"] for t in history["transfers"]] == ["pickup", "handoff", "delivery"]


@pytest.mark.asyncio
async def test_explicit_status_change_locks_the_package_row(client, parties, package, mocker):
    spy = mocker.spy(CustodyService, "get_package")

    response = await client.put(
        f"/v1/packages/{package['id']}", json={"status": "cancelled"}, headers=parties["sender"]["headers"]
    )

    assert response.status_code == 200
    assert spy.call_args.kwargs.get("for_update") is True
