"""Tests for the admin listing view and the manual sweep trigger."""

import pytest

from tests.factories import bearer, property_payload


@pytest.fixture
def stale_listing(client, register):
    token, _ = register("agent@portal.test")
    resp = client.post(
        "/api/properties",
        json=property_payload(title="Stale", expires_at="2020-01-01T00:00:00"),
        headers=bearer(token),
    )
    return resp.json()["data"]


@pytest.mark.integration
def test_manual_sweep_expires_stale_listing(client, admin_token, stale_listing):
    resp = client.post("/api/admin/expiration/sweep", headers=bearer(admin_token))

    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "matched": 1,
        "expired": 1,
        "failed": 0,
        "expired_ids": [stale_listing["id"]],
    }

    again = client.post("/api/admin/expiration/sweep", headers=bearer(admin_token))
    assert again.json()["data"]["matched"] == 0


@pytest.mark.integration
def test_admin_listing_filters_by_status(client, admin_token, stale_listing):
    before = client.get("/api/admin/properties", params={"status": "expired"}, headers=bearer(admin_token))
    client.post("/api/admin/expiration/sweep", headers=bearer(admin_token))
    after = client.get("/api/admin/properties", params={"status": "expired"}, headers=bearer(admin_token))

    assert before.json()["total"] == 0
    assert [item["title"] for item in after.json()["data"]] == ["Stale"]


@pytest.mark.integration
def test_admin_routes_require_admin(client, register, stale_listing):
    token, _ = register("someone@portal.test")

    assert client.post("/api/admin/expiration/sweep", headers=bearer(token)).status_code == 403
    assert client.get("/api/admin/properties", headers=bearer(token)).status_code == 403
