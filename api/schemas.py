from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models import Category, Currency, PropertyType, Role

URL_PATTERN = r"^https?://[^\s$.?#].[^\s]*$"
NULLABLE_UPDATES = {"street", "latitude", "longitude", "expires_at"}


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ImageResponse(BaseModel):
    id: int
    url: str
    public_id: Optional[str] = None
    caption: str = ""
    is_main: bool = False

    model_config = ConfigDict(from_attributes=True)


class PropertyResponse(BaseModel):
    id: int
    title: str
    description: str
    price: float
    currency: str
    category: str
    property_type: str
    street: Optional[str] = None
    city: str
    country: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bedrooms: int
    bathrooms: int
    area: float
    is_featured: bool
    status: str
    expires_at: Optional[datetime] = None
    owner_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    images: List[ImageResponse] = []

    model_config = ConfigDict(from_attributes=True)


def _check_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if (latitude is None) != (longitude is None):
        raise ValueError("Coordinates must contain exactly two numbers: latitude and longitude")


class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=5000)
    price: float = Field(..., ge=0)
    currency: Currency = Currency.MUR
    category: Category
    property_type: PropertyType
    street: Optional[str] = Field(None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field("Mauritius", min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    bedrooms: int = Field(0, ge=0)
    bathrooms: int = Field(0, ge=0)
    area: float = Field(..., ge=0)
    is_featured: bool = False
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def naive_expiry(cls, value):
        return _naive_utc(value)

    @field_validator("title", "city", "country", "street")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def coordinates_pair(self):
        _check_coordinates(self.latitude, self.longitude)
        return self

    def to_fields(self) -> dict:
        return self.model_dump(mode="python") | {
            "currency": self.currency.value,
            "category": self.category.value,
            "property_type": self.property_type.value,
        }


class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    category: Optional[Category] = None
    property_type: Optional[PropertyType] = None
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("expires_at")
    @classmethod
    def naive_expiry(cls, value):
        return _naive_utc(value)

    @model_validator(mode="after")
    def coordinates_pair(self):
        fields = self.model_fields_set
        if ("latitude" in fields) != ("longitude" in fields):
            raise ValueError("Coordinates must be updated together")
        _check_coordinates(self.latitude, self.longitude)
        return self

    def to_changes(self) -> dict:
        changes = {
            key: value
            for key, value in self.model_dump(exclude_unset=True, mode="python").items()
            if value is not None or key in NULLABLE_UPDATES
        }
        for key in ("currency", "category", "property_type"):
            if changes.get(key) is not None:
                changes[key] = changes[key].value
        return changes


class ImageIn(BaseModel):
    url: str = Field(..., pattern=URL_PATTERN)
    public_id: Optional[str] = Field(None, alias="publicId")
    caption: Optional[str] = Field(None, max_length=200)
    is_main: bool = Field(False, alias="isMain")

    model_config = ConfigDict(populate_by_name=True)


class ImagesPayload(BaseModel):
    cloudinaryUrls: Optional[List[ImageIn]] = None


class PageRef(BaseModel):
    page: int
    limit: int


class Pagination(BaseModel):
    next: Optional[PageRef] = None
    prev: Optional[PageRef] = None

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pagination = cls()
        if page * limit < total:
            pagination.next = PageRef(page=page + 1, limit=limit)
        if page > 1:
            pagination.prev = PageRef(page=page - 1, limit=limit)
        return pagination


class PropertyListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    pagination: Pagination = Field(default_factory=Pagination)
    data: List[PropertyResponse]


class SearchResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    data: List[PropertyResponse]


class PropertyEnvelope(BaseModel):
    success: bool = True
    data: PropertyResponse


class ImagesEnvelope(BaseModel):
    success: bool = True
    data: List[ImageResponse]


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class RegisterPayload(BaseModel):
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")
    password: str = Field(..., min_length=6)
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.USER

    @field_validator("role")
    @classmethod
    def no_self_promotion(cls, value: Role) -> Role:
        if value == Role.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return value


class LoginPayload(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    user: UserResponse


class CredentialData(BaseModel):
    timestamp: int
    signature: str
    cloudName: str
    apiKey: str
    folder: Optional[str] = None
    uploadPreset: Optional[str] = None


class CredentialResponse(BaseModel):
    success: bool = True
    data: CredentialData


class SweepResult(BaseModel):
    matched: int
    expired: int
    failed: int
    expired_ids: List[int] = []


class SweepResponse(BaseModel):
    success: bool = True
    data: SweepResult
