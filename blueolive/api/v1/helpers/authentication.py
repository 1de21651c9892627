"""
Authentication helpers.

Authentication is optional on most analysis endpoints: a request without an
``Authorization`` header acts as the shared anonymous owner. A header that is
present but invalid is rejected rather than downgraded to anonymous.
"""

from typing import Any
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import bcrypt
from fastapi import Depends, Request
from datetime import timedelta, datetime, timezone
from jose import JWTError, jwt
from blueolive.core.ownership import ANONYMOUS, Owner, RegisteredOwner
from blueolive.db.session import get_db
from blueolive.models.iam.users import User
from blueolive.config import settings
from blueolive.api.v1.helpers.responses import unauthorized_response
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode(
        "utf-8"
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


async def authenticate_user(email: str, password: str, db: AsyncSession) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def get_bearer_token(request: Request) -> str | None:
    auth_header: str | None = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


async def validate_jwt_token(jwt_token: str, db: AsyncSession) -> User:
    try:
        payload = jwt.decode(jwt_token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise unauthorized_response("Invalid JWT")

    user_id = payload.get("sub")
    if user_id is None:
        raise unauthorized_response("No user id found in token")
    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        raise unauthorized_response("Invalid JWT")

    result = await db.execute(select(User).where(User.user_id == user_uuid))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise unauthorized_response("Invalid or inactive user")
    return user


class JWTAuthenticationProvider:
    """Resolves the owner of a request from an optional bearer JWT."""

    async def authenticate(self, request: Any, db: AsyncSession) -> Owner:
        jwt_token = get_bearer_token(request)
        if jwt_token is None:
            return ANONYMOUS
        user = await validate_jwt_token(jwt_token, db)
        return RegisteredOwner(user_id=user.user_id, email=user.email)


async def get_current_owner(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Owner:
    provider = getattr(request.app.state, "authentication_provider", None)
    if provider is None:
        provider = JWTAuthenticationProvider()
    return await provider.authenticate(request, db)


async def require_registered_owner(
    owner: Owner = Depends(get_current_owner),
) -> RegisteredOwner:
    if owner.is_anonymous:
        raise unauthorized_response("Authentication required")
    return owner


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    jwt_token = get_bearer_token(request)
    if jwt_token is None:
        raise unauthorized_response("Authentication required")
    return await validate_jwt_token(jwt_token, db)
