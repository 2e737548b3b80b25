"""
Tests for the photo verification capability and its circuit breaker.
"""

import pytest

from backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from backend.app.main import app
from backend.app.services.verification import (
    MockPhotoVerifier, PhotoVerifier, VerificationResult, classify,
    get_photo_verifier, verifier_circuit_breaker, verify_photos
)
from conftest import register_user


class FailingVerifier(PhotoVerifier):
    name = "failing"

    def __init__(self):
        self.calls = 0

    async def verify(self, photo_a, photo_b):
        self.calls += 1
        raise TimeoutError("model backend timed out")


@pytest.fixture(autouse=True)
def reset_breaker():
    verifier_circuit_breaker.reset_state()
    yield
    verifier_circuit_breaker.reset_state()


@pytest.mark.asyncio
async def test_identical_photos_verify():
    result = await MockPhotoVerifier().verify("QmPhotoA", "QmPhotoA")

    assert result.similarity == 100.0
    assert result.damage_detected is False
    assert result.status == "verified"


@pytest.mark.asyncio
async def test_mock_is_deterministic():
    verifier = MockPhotoVerifier()
    first = await verifier.verify("QmPhotoA", "QmPhotoB")
    second = await verifier.verify("QmPhotoA", "QmPhotoB")

    assert first == second
    assert first.status in {"verified", "warning", "failed"}
    assert 0 <= first.similarity <= 100


def test_classify_thresholds():
    assert classify(60, 90, False)[0] == "failed"
    assert classify(80, 90, False)[0] == "warning"
    assert classify(95, 90, False)[0] == "verified"
    status, details = classify(95, 50, True)
    assert status == "warning"
    assert "Potential damage detected" in details
    assert "Moderate authenticity confidence" in details


@pytest.mark.asyncio
async def test_circuit_opens_after_threshold():
    breaker = CircuitBreaker("test", failure_threshold=2, reset_timeout=60)
    verifier = FailingVerifier()

    for _ in range(2):
        with pytest.raises(TimeoutError):
            await breaker.call(verifier.verify, "a", "b")

    assert breaker.state == "OPEN"
    with pytest.raises(CircuitOpenError):
        await breaker.call(verifier.verify, "a", "b")
    assert verifier.calls == 2


@pytest.mark.asyncio
async def test_half_open_trial_closes_circuit_on_success():
    breaker = CircuitBreaker("test", failure_threshold=1, reset_timeout=0)
    with pytest.raises(TimeoutError):
        await breaker.call(FailingVerifier().verify, "a", "b")
    assert breaker.state == "OPEN"
    breaker.last_failure_time -= 1

    result = await breaker.call(MockPhotoVerifier().verify, "a", "a")

    assert isinstance(result, VerificationResult)
    assert breaker.state == "CLOSED"
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_verify_photos_goes_through_breaker():
    result = await verify_photos(MockPhotoVerifier(), "x", "x")
    assert result.status == "verified"
    assert verifier_circuit_breaker.state == "CLOSED"


@pytest.mark.asyncio
async def test_verification_endpoint(client):
    user = await register_user(client, "photo_user", "courier")

    response = await client.post(
        "/v1/verification/photos",
        json={"original_photo": "QmSame", "comparison_photo": "QmSame"},
        headers=user["headers"],
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "verified"
    assert data["similarity"] == 100.0


@pytest.mark.asyncio
async def test_verification_endpoint_requires_auth(client):
    response = await client.post(
        "/v1/verification/photos",
        json={"original_photo": "a", "comparison_photo": "b"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_endpoint_returns_503_while_circuit_open(client):
    user = await register_user(client, "photo_user2", "courier")
    app.dependency_overrides[get_photo_verifier] = FailingVerifier
    verifier_circuit_breaker.state = "OPEN"
    verifier_circuit_breaker.last_failure_time = float("inf")
    try:
        response = await client.post(
            "/v1/verification/photos",
            json={"original_photo": "a", "comparison_photo": "b"},
            headers=user["headers"],
        )
    finally:
        del app.dependency_overrides[get_photo_verifier]

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_SERVICE_UNAVAILABLE"
