import base64
import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database.crud import CRUDSession
from database.database import get_db
from database.models import User
from errors import AuthenticationRequired, PermissionDenied
from models import Role

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 390000
SALT_BYTES = 16


def hash_password(password: str, iterations: int = ITERATIONS) -> str:
    salt = os.urandom(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations, dklen=32)
    return "$".join(
        [
            ALGORITHM,
            str(iterations),
            base64.b64encode(salt).decode("utf-8"),
            base64.b64encode(digest).decode("utf-8"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iter_str, salt_b64, hash_b64 = encoded.split("$")
        if algorithm != ALGORITHM:
            return False
        iterations = int(iter_str)
        salt = base64.b64decode(salt_b64.encode("utf-8"))
        stored = base64.b64decode(hash_b64.encode("utf-8"))
    except ValueError:
        return False
    new_digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations, dklen=len(stored))
    return hmac.compare_digest(new_digest, stored)


@dataclass
class AuthContext:
    """Session state for one request, passed explicitly to whatever needs it."""

    token: Optional[str] = None
    user: Optional[User] = None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role == Role.ADMIN.value

    def require_user(self) -> User:
        if self.user is None:
            raise AuthenticationRequired("Not authorized to access this route")
        return self.user

    def can_manage(self, owner_id: int) -> bool:
        return self.is_admin or (self.user is not None and self.user.id == owner_id)


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header.split(None, 1)[1].strip() if " " in auth_header else ""
    return token or None


async def get_auth_context(request: Request, db: AsyncSession = Depends(get_db)) -> AuthContext:
    token = _bearer_token(request)
    if not token:
        return AuthContext()
    user = await CRUDSession.get_user(db, token)
    return AuthContext(token=token if user else None, user=user)


async def require_auth(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    auth.require_user()
    return auth


def require_roles(*roles: Role) -> Callable:
    allowed = {role.value for role in roles}

    async def dependency(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if auth.user.role not in allowed:
            raise PermissionDenied(f"User role {auth.user.role} is not authorized to access this route")
        return auth

    return dependency
