"""Test data factories."""

from database.models import Property


def property_payload(**overrides) -> dict:
    """JSON body accepted by POST /api/properties."""
    payload = {
        "title": "Sea view apartment",
        "description": "Bright two bedroom apartment close to the beach.",
        "price": 8500000,
        "currency": "MUR",
        "category": "for-sale",
        "property_type": "apartment",
        "city": "Grand Baie",
        "country": "Mauritius",
        "bedrooms": 2,
        "bathrooms": 1,
        "area": 95,
    }
    payload.update(overrides)
    return payload


def make_property(owner_id: int, **overrides) -> Property:
    """ORM instance for tests that talk to the database directly."""
    return Property(owner_id=owner_id, images=[], **property_payload(**overrides))


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
