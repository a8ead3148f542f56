import secrets
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy import select, func, or_, and_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database.models import AuthSession, Property, PropertyImage, User, utcnow
from errors import InvalidRequest
from models import ALL_TYPES, ListingStatus


def _is_visible(now: datetime):
    """Active and not past its expiry, whether or not the sweep has run yet."""
    return and_(
        Property.status == ListingStatus.ACTIVE.value,
        or_(Property.expires_at.is_(None), Property.expires_at > now),
    )


def is_stale(prop: Property, now: Optional[datetime] = None) -> bool:
    return (
        prop.status == ListingStatus.ACTIVE.value
        and prop.expires_at is not None
        and prop.expires_at <= (now or utcnow())
    )


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _ordering():
    return (Property.is_featured.desc(), Property.created_at.desc(), Property.id.desc())


def normalize_main_image(images: List[PropertyImage]) -> None:
    seen_main = False
    for image in images:
        if image.is_main and not seen_main:
            seen_main = True
        elif image.is_main:
            image.is_main = False
    if images and not seen_main:
        images[0].is_main = True


class CRUDUser:

    @staticmethod
    async def create(db: AsyncSession, email: str, password_hash: str, role: str, **kwargs) -> User:
        user = User(email=email.lower(), password_hash=password_hash, role=role, **kwargs)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()


class CRUDSession:

    @staticmethod
    async def create(db: AsyncSession, user_id: int) -> AuthSession:
        session = AuthSession(token=secrets.token_hex(32), user_id=user_id)
        db.add(session)
        await db.commit()
        return session

    @staticmethod
    async def get_user(db: AsyncSession, token: str) -> Optional[User]:
        result = await db.execute(
            select(User).join(AuthSession, AuthSession.user_id == User.id).where(AuthSession.token == token)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def revoke(db: AsyncSession, token: str) -> None:
        await db.execute(delete(AuthSession).where(AuthSession.token == token))
        await db.commit()


class CRUDProperty:

    @staticmethod
    async def create(db: AsyncSession, owner_id: int, **fields) -> Property:
        prop = Property(owner_id=owner_id, images=[], **fields)
        db.add(prop)
        await db.commit()
        return await CRUDProperty.get_by_id(db, prop.id)

    @staticmethod
    async def get_by_id(db: AsyncSession, property_id: int) -> Optional[Property]:
        result = await db.execute(
            select(Property)
            .options(selectinload(Property.images))
            .where(Property.id == property_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def search(
        db: AsyncSession,
        query: str = "",
        category: Optional[str] = None,
        property_type: Optional[str] = None,
        max_price: Optional[float] = None,
        owner_id: Optional[int] = None,
        featured: Optional[bool] = None,
        now: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Property], int]:
        conds = [_is_visible(now or utcnow())]

        if category:
            conds.append(Property.category == category)

        if property_type and property_type.lower() != ALL_TYPES:
            conds.append(Property.property_type == property_type.lower())

        if max_price is not None:
            conds.append(Property.price <= max_price)

        if owner_id is not None:
            conds.append(Property.owner_id == owner_id)

        if featured is not None:
            conds.append(Property.is_featured.is_(featured))

        if query:
            search_pattern = f"%{escape_like(query.lower())}%"
            conds.append(
                or_(
                    func.lower(Property.title).like(search_pattern, escape="\\"),
                    func.lower(Property.description).like(search_pattern, escape="\\"),
                    func.lower(Property.city).like(search_pattern, escape="\\"),
                    func.lower(Property.country).like(search_pattern, escape="\\")
                )
            )

        total = (
            await db.execute(select(func.count(Property.id)).where(*conds))
        ).scalar_one()

        stmt = (
            select(Property)
            .options(selectinload(Property.images))
            .where(*conds)
            .order_by(*_ordering())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def get_all(
        db: AsyncSession, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> Tuple[List[Property], int]:
        conds = []
        if status:
            conds.append(Property.status == status)

        total = (await db.execute(select(func.count(Property.id)).where(*conds))).scalar_one()
        result = await db.execute(
            select(Property)
            .options(selectinload(Property.images))
            .where(*conds)
            .order_by(Property.created_at.desc(), Property.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def find_stale(db: AsyncSession, now: datetime) -> List[Property]:
        result = await db.execute(
            select(Property).where(
                and_(
                    Property.status == ListingStatus.ACTIVE.value,
                    Property.expires_at <= now
                )
            ).order_by(Property.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_expired(db: AsyncSession, property_id: int) -> bool:
        result = await db.execute(
            update(Property)
            .where(Property.id == property_id, Property.status == ListingStatus.ACTIVE.value)
            .values(status=ListingStatus.EXPIRED.value)
        )
        return result.rowcount > 0

    @staticmethod
    async def update(db: AsyncSession, prop: Property, changes: Dict[str, Any]) -> Property:
        for key, value in changes.items():
            setattr(prop, key, value)
        await db.commit()
        return await CRUDProperty.get_by_id(db, prop.id)

    @staticmethod
    async def delete(db: AsyncSession, prop: Property) -> None:
        await db.delete(prop)
        await db.commit()

    @staticmethod
    async def add_images(
        db: AsyncSession, prop: Property, items: Iterable[Dict[str, Any]], max_images: int
    ) -> Property:
        items = list(items)
        if len(prop.images) + len(items) > max_images:
            raise InvalidRequest(f"Cannot upload more than {max_images} images")

        request_names_main = any(item.get("is_main") for item in items)
        start = len(prop.images)
        for index, item in enumerate(items):
            prop.images.append(
                PropertyImage(
                    url=item["url"],
                    public_id=item.get("public_id"),
                    caption=item.get("caption") or f"Image {index + 1}",
                    is_main=bool(item.get("is_main")) or (not request_names_main and index == 0),
                    position=start + index,
                )
            )

        normalize_main_image(prop.images)
        await db.commit()
        return await CRUDProperty.get_by_id(db, prop.id)

    @staticmethod
    async def remove_image(db: AsyncSession, prop: Property, image_id: int) -> Optional[PropertyImage]:
        image = next((img for img in prop.images if img.id == image_id), None)
        if image is None:
            return None

        prop.images.remove(image)
        for position, remaining in enumerate(prop.images):
            remaining.position = position
        normalize_main_image(prop.images)
        await db.commit()
        return image
