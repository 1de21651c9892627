"""
User registration, login and profile.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blueolive.api.v1.helpers.authentication import (
    authenticate_user,
    create_access_token,
    get_current_user,
    hash_password,
)
from blueolive.api.v1.helpers.responses import conflict_response, error_response
from blueolive.config import settings
from blueolive.db.session import get_db
from blueolive.models.iam.users import User
from blueolive.models.pydantic_models.user import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserModel,
)
from blueolive.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_for(user: User) -> TokenResponse:
    access_token = create_access_token(
        data={"sub": str(user.user_id)},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=UserModel.model_validate(user),
    )


@router.post(
    "/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an account and return an access token for it."""
    email = request.email.strip().lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise conflict_response("Email already registered")

    user = User(
        email=email,
        full_name=request.full_name,
        hashed_password=hash_password(request.password),
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise conflict_response("Email already registered")
    await db.refresh(user)

    logger.info(f"Registered user {user.user_id}")
    return _token_for(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email + password and receive a JWT."""
    user = await authenticate_user(request.email.strip().lower(), request.password, db)
    if user is None:
        raise error_response("Invalid email or password", status_code=401)

    user.last_login = utcnow()
    await db.commit()
    await db.refresh(user)
    return _token_for(user)


@router.get("/me", response_model=UserModel)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return UserModel.model_validate(current_user)
