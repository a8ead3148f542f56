from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Category(str, Enum):
    FOR_SALE = "for-sale"
    FOR_RENT = "for-rent"
    OFFICES = "offices"
    LAND = "land"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    VILLA = "villa"
    OFFICE = "office"
    LAND = "land"


ALL_TYPES = "all"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class Currency(str, Enum):
    MUR = "MUR"
    USD = "USD"
    EUR = "EUR"


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"
    AGENCY = "agency"
    PROMOTER = "promoter"
    ADMIN = "admin"


LISTING_ROLES = (Role.AGENT, Role.AGENCY, Role.PROMOTER, Role.ADMIN)


class UploadNamespace(Enum):
    """Entity namespaces that can request a signed upload credential."""

    PROPERTY = ("properties", "property-images")
    AGENT = ("agents", "agent-photos")
    AGENCY = ("agencies", "agency-logos")
    PROMOTER = ("promoters", "promoter-logos")
    VERIFICATION = ("verifications", "verification-documents")

    def __init__(self, route: str, default_folder: str):
        self.route = route
        self.default_folder = default_folder

    @classmethod
    def from_route(cls, route: str) -> "UploadNamespace":
        for namespace in cls:
            if namespace.route == route:
                return namespace
        raise ValueError(f"Unknown upload namespace: {route}")


@dataclass
class UploadCredential:
    timestamp: int
    signature: str
    cloud_name: str
    api_key: str
    folder: Optional[str] = None
    upload_preset: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "signature": self.signature,
            "cloudName": self.cloud_name,
            "apiKey": self.api_key,
            "folder": self.folder,
            "uploadPreset": self.upload_preset,
        }


@dataclass
class UploadedMedia:
    url: str
    public_id: str

    def to_dict(self) -> dict:
        return {"url": self.url, "publicId": self.public_id}


@dataclass
class SearchQuery:
    category: Category = Category.FOR_SALE
    free_text: Optional[str] = None
    property_type: Optional[str] = None
    max_price: Optional[float] = None


@dataclass
class SweepReport:
    matched: int = 0
    expired: int = 0
    failed: int = 0
    expired_ids: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "matched": self.matched,
            "expired": self.expired,
            "failed": self.failed,
            "expired_ids": list(self.expired_ids),
        }
