"""Tests for the per-namespace upload signature endpoints."""

import pytest

from services.media import sign_params
from tests.factories import bearer


@pytest.fixture
def token(register):
    return register("agent@portal.test")[0]


@pytest.mark.integration
@pytest.mark.parametrize("route,folder", [
    ("properties", "property-images"),
    ("agents", "agent-photos"),
    ("agencies", "agency-logos"),
    ("promoters", "promoter-logos"),
    ("verifications", "verification-documents"),
])
def test_signature_for_each_namespace(client, token, route, folder):
    resp = client.get(f"/api/{route}/cloudinary-signature", headers=bearer(token))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["cloudName"] == "demo"
    assert data["apiKey"] == "key123"
    assert data["folder"] == folder
    assert data["uploadPreset"] == "mauritius"
    expected = sign_params(
        {"timestamp": data["timestamp"], "folder": folder, "upload_preset": "mauritius"}, "secret"
    )
    assert data["signature"] == expected


@pytest.mark.integration
def test_signature_requires_token(client):
    resp = client.get("/api/properties/cloudinary-signature")

    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.integration
def test_signature_for_subfolder(client, token):
    resp = client.get(
        "/api/properties/cloudinary-signature", params={"folder": "property-images/42"}, headers=bearer(token)
    )

    assert resp.json()["data"]["folder"] == "property-images/42"


@pytest.mark.integration
def test_signature_rejects_foreign_folder(client, token):
    resp = client.get(
        "/api/agents/cloudinary-signature", params={"folder": "property-images"}, headers=bearer(token)
    )

    assert resp.status_code == 400


@pytest.mark.integration
def test_unknown_namespace_is_404(client, token):
    assert client.get("/api/castles/cloudinary-signature", headers=bearer(token)).status_code == 404
