import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth import (
    AuthContext,
    get_auth_context,
    hash_password,
    require_auth,
    require_roles,
    verify_password,
)
from api.schemas import (
    CredentialResponse,
    ImageResponse,
    ImagesEnvelope,
    ImagesPayload,
    LoginPayload,
    Pagination,
    PropertyCreate,
    PropertyEnvelope,
    PropertyListResponse,
    PropertyResponse,
    PropertyUpdate,
    RegisterPayload,
    SearchResponse,
    SweepResponse,
    TokenResponse,
    UserResponse,
)
from database.crud import CRUDProperty, CRUDSession, CRUDUser, is_stale
from database.database import get_db
from database.models import Property
from errors import AuthenticationRequired, InvalidRequest, PermissionDenied, ResourceNotFound
from models import LISTING_ROLES, Category, ListingStatus, Role, UploadNamespace
from services.media import MediaSigner
from utils.validator import optional_price

logger = logging.getLogger(__name__)

router = APIRouter()
media_router = APIRouter()
auth_router = APIRouter(prefix="/auth")
admin_router = APIRouter(prefix="/admin")


def _page(items, total: int, page: int, limit: int) -> PropertyListResponse:
    return PropertyListResponse(
        count=len(items),
        total=total,
        pagination=Pagination.build(page, limit, total),
        data=[PropertyResponse.model_validate(p) for p in items],
    )


async def _get_managed_property(db: AsyncSession, property_id: int, auth: AuthContext, action: str) -> Property:
    prop = await CRUDProperty.get_by_id(db, property_id)
    if not prop:
        raise ResourceNotFound(f"Property not found with id of {property_id}")
    if not auth.can_manage(prop.owner_id):
        raise PermissionDenied(f"User {auth.user.id} is not authorized to {action} this property")
    return prop


# ---------- Properties ----------

@router.get("/properties", response_model=PropertyListResponse)
async def list_properties(
    owner: Optional[int] = Query(None, description="Only listings of this owner"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    items, total = await CRUDProperty.search(db, owner_id=owner, limit=limit, offset=(page - 1) * limit)
    return _page(items, total, page, limit)


@router.get("/properties/search", response_model=SearchResponse)
async def search_properties(
    category: Optional[Category] = Query(None, description="Listing category"),
    q: str = Query("", description="Free text over title, description, city and country"),
    type: Optional[str] = Query(None, description="Property type, 'all' for any"),
    maxPrice: Optional[str] = Query(None, description="Upper price bound, ignored unless numeric"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    items, total = await CRUDProperty.search(
        db,
        query=q.strip(),
        category=category.value if category else None,
        property_type=type,
        max_price=optional_price(maxPrice),
        limit=limit,
        offset=(page - 1) * limit
    )
    return SearchResponse(
        count=len(items),
        total=total,
        data=[PropertyResponse.model_validate(p) for p in items]
    )


@router.get("/properties/featured", response_model=PropertyListResponse)
async def featured_properties(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
):
    items, total = await CRUDProperty.search(db, featured=True, limit=limit)
    return _page(items, total, 1, limit)


@router.get("/properties/category/{category_slug}", response_model=PropertyListResponse)
async def properties_by_category(
    category_slug: Category,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    items, total = await CRUDProperty.search(
        db, category=category_slug.value, limit=limit, offset=(page - 1) * limit
    )
    return _page(items, total, page, limit)


@router.post("/properties", response_model=PropertyEnvelope)
async def create_property(
    payload: PropertyCreate,
    auth: AuthContext = Depends(require_roles(*LISTING_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    prop = await CRUDProperty.create(db, owner_id=auth.user.id, **payload.to_fields())
    logger.info("Property created", extra={"property_id": prop.id, "owner_id": auth.user.id})
    return PropertyEnvelope(data=PropertyResponse.model_validate(prop))


@router.get("/properties/{property_id:int}", response_model=PropertyEnvelope)
async def get_property(property_id: int, db: AsyncSession = Depends(get_db)):
    prop = await CRUDProperty.get_by_id(db, property_id)
    if not prop:
        raise ResourceNotFound(f"Property not found with id of {property_id}")
    data = PropertyResponse.model_validate(prop)
    if is_stale(prop):
        # Past expiry but not swept yet
        data.status = ListingStatus.EXPIRED.value
    return PropertyEnvelope(data=data)


@router.put("/properties/{property_id:int}", response_model=PropertyEnvelope)
async def update_property(
    property_id: int,
    payload: PropertyUpdate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    prop = await _get_managed_property(db, property_id, auth, "update")
    prop = await CRUDProperty.update(db, prop, payload.to_changes())
    return PropertyEnvelope(data=PropertyResponse.model_validate(prop))


@router.delete("/properties/{property_id:int}")
async def delete_property(
    property_id: int,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    prop = await _get_managed_property(db, property_id, auth, "delete")
    public_ids = [img.public_id for img in prop.images if img.public_id]
    await CRUDProperty.delete(db, prop)

    if public_ids:
        media = request.app.state.media
        await asyncio.gather(*(media.destroy(pid) for pid in public_ids))

    logger.info("Property deleted", extra={"property_id": property_id, "images": len(public_ids)})
    return {"success": True, "data": {}}


@router.post("/properties/{property_id:int}/images", response_model=ImagesEnvelope)
async def add_property_images(
    property_id: int,
    payload: ImagesPayload,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    if not payload.cloudinaryUrls:
        raise InvalidRequest("Please provide valid image data")

    prop = await _get_managed_property(db, property_id, auth, "update")
    prop = await CRUDProperty.add_images(
        db,
        prop,
        [img.model_dump() for img in payload.cloudinaryUrls],
        max_images=request.app.state.config.max_images_per_listing,
    )
    return ImagesEnvelope(data=[ImageResponse.model_validate(img) for img in prop.images])


@router.delete("/properties/{property_id:int}/images/{image_id:int}", response_model=ImagesEnvelope)
async def delete_property_image(
    property_id: int,
    image_id: int,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
):
    prop = await _get_managed_property(db, property_id, auth, "update")
    removed = await CRUDProperty.remove_image(db, prop, image_id)
    if removed is None:
        raise ResourceNotFound(f"Image not found with id of {image_id}")

    await request.app.state.media.destroy(removed.public_id)
    return ImagesEnvelope(data=[ImageResponse.model_validate(img) for img in prop.images])


# ---------- Signed uploads ----------

@media_router.get("/{namespace}/cloudinary-signature", response_model=CredentialResponse)
async def upload_signature(
    namespace: str,
    request: Request,
    folder: Optional[str] = Query(None, description="Sub-folder of the namespace default folder"),
    auth: AuthContext = Depends(require_auth)
):
    try:
        upload_namespace = UploadNamespace.from_route(namespace)
    except ValueError:
        raise ResourceNotFound(f"No upload namespace named {namespace}")

    signer = MediaSigner(request.app.state.config)
    credential = signer.credential_for(upload_namespace, folder=folder)
    logger.info(
        "Issued upload signature",
        extra={"namespace": upload_namespace.route, "user_id": auth.user.id, "folder": credential.folder},
    )
    return CredentialResponse(data=credential.to_dict())


# ---------- Auth ----------

@auth_router.post("/register", response_model=TokenResponse)
async def register(payload: RegisterPayload, db: AsyncSession = Depends(get_db)):
    if await CRUDUser.get_by_email(db, payload.email.strip()):
        raise InvalidRequest("User already exists")

    user = await CRUDUser.create(
        db,
        email=payload.email.strip(),
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
    )
    session = await CRUDSession.create(db, user.id)
    return TokenResponse(token=session.token, user=UserResponse.model_validate(user))


@auth_router.post("/login", response_model=TokenResponse)
async def login(payload: LoginPayload, db: AsyncSession = Depends(get_db)):
    user = await CRUDUser.get_by_email(db, payload.email.strip())
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthenticationRequired("Invalid credentials")
    session = await CRUDSession.create(db, user.id)
    return TokenResponse(token=session.token, user=UserResponse.model_validate(user))


@auth_router.get("/me")
async def me(auth: AuthContext = Depends(require_auth)):
    return {"success": True, "data": UserResponse.model_validate(auth.user)}


@auth_router.post("/logout")
async def logout(auth: AuthContext = Depends(get_auth_context), db: AsyncSession = Depends(get_db)):
    if auth.token:
        await CRUDSession.revoke(db, auth.token)
    return {"success": True, "data": {}}


# ---------- Admin ----------

@admin_router.get("/properties", response_model=PropertyListResponse)
async def admin_properties(
    status: Optional[ListingStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    auth: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    items, total = await CRUDProperty.get_all(
        db, status=status.value if status else None, limit=limit, offset=(page - 1) * limit
    )
    return _page(items, total, page, limit)


@admin_router.post("/expiration/sweep", response_model=SweepResponse)
async def admin_sweep(
    request: Request,
    auth: AuthContext = Depends(require_roles(Role.ADMIN)),
):
    report = await request.app.state.expiration_sweep.run_once()
    logger.info("Manual expiration sweep", extra={"user_id": auth.user.id, **report.to_dict()})
    return SweepResponse(data=report.to_dict())
