from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, Integer, String, Float, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship, declarative_base

from models import Category, Currency, ListingStatus, Role

Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC; SQLite drops tzinfo on round-trip.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(20), nullable=False, default=Role.USER.value)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")
    properties = relationship("Property", back_populates="owner")


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="sessions")


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False, index=True)
    currency = Column(String(3), nullable=False, default=Currency.MUR.value)
    category = Column(String(20), nullable=False, default=Category.FOR_SALE.value, index=True)
    property_type = Column(String(20), nullable=False, index=True)

    street = Column(String(200))
    city = Column(String(100), nullable=False, index=True)
    country = Column(String(100), nullable=False, default="Mauritius")
    latitude = Column(Float)
    longitude = Column(Float)

    bedrooms = Column(Integer, nullable=False, default=0)
    bathrooms = Column(Integer, nullable=False, default=0)
    area = Column(Float, nullable=False, default=0.0)
    is_featured = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default=ListingStatus.ACTIVE.value, index=True)
    expires_at = Column(DateTime, nullable=True, index=True)

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="properties")
    images = relationship(
        "PropertyImage",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="PropertyImage.position",
    )

    __table_args__ = (
        Index('ix_properties_category_status', 'category', 'status'),
        Index('ix_properties_type_price', 'property_type', 'price'),
        Index('ix_properties_status_expires', 'status', 'expires_at'),
    )


class PropertyImage(Base):
    __tablename__ = "property_images"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    public_id = Column(String(255))
    caption = Column(String(200), nullable=False, default="")
    is_main = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)

    property = relationship("Property", back_populates="images")
