"""FastAPI router for account registration and token authentication."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from jose import JWTError, jwt
from pydantic import EmailStr, StringConstraints
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.security import hash_password, verify_password
from app.config import Settings, get_settings
from app.db import crud
from app.db.models import User
from app.db.session import get_session
from app.limits import limiter
from app.schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

TOKEN_HEADER = "auth-token"
TOKEN_ALGORITHM = "HS256"


class RegisterRequest(CamelModel):
    """Request model for account registration."""

    username: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=3, max_length=30)
    ]
    email: EmailStr
    password: Annotated[str, StringConstraints(min_length=6)]
    channel_name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=5, max_length=50)
    ]


class LoginRequest(CamelModel):
    """Request model for logging in."""

    email: str
    password: str


class AuthUser(CamelModel):
    """User fields returned alongside a token."""

    id: str
    username: str
    channel_name: str


class AuthResponse(CamelModel):
    """Response model for register and login."""

    message: str
    token: str
    user: AuthUser


class ProfileResponse(CamelModel):
    """The authenticated user's own profile."""

    id: str
    username: str
    email: str
    channel_name: str
    channel_description: str
    profile_picture: str
    created_at: str


def _create_access_token(user_id: str, settings: Settings) -> str:
    """Create a signed JWT whose subject is the user ID."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + settings.token_ttl_seconds,
    }
    return jwt.encode(payload, settings.app_secret_key, algorithm=TOKEN_ALGORITHM)


def _verify_access_token(token: str, settings: Settings) -> str | None:
    """Verify a token and return the user ID, or None if invalid."""
    try:
        payload = jwt.decode(token, settings.app_secret_key, algorithms=[TOKEN_ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


async def require_user(
    auth_token: Annotated[str | None, Header(alias=TOKEN_HEADER)] = None,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    FastAPI dependency that requires a valid authenticated user.

    Args:
        auth_token: The token from the ``auth-token`` header
        db: Database session
        settings: Application settings

    Returns:
        The authenticated User object

    Raises:
        HTTPException: 401 if the token is missing or its user is gone,
            400 if the token is malformed, expired or badly signed
    """
    if not auth_token:
        raise HTTPException(status_code=401, detail="Access denied")

    user_id = _verify_access_token(auth_token, settings)
    if not user_id:
        raise HTTPException(status_code=400, detail="Invalid token")

    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user


def _auth_response(message: str, user: User, settings: Settings) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=_create_access_token(user.id, settings),
        user=AuthUser(id=user.id, username=user.username, channel_name=user.channel_name),
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
@limiter.limit("10/minute")
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Create an account and its channel, and return a token.

    Rate limit: 10 requests per minute per IP.

    Raises:
        HTTPException: 400 if the email or username is already taken
    """
    ip_address = request.client.host if request.client else "unknown"

    if await crud.get_user_by_email(db, body.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    if await crud.get_user_by_username(db, body.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    try:
        user = await crud.create_user(
            db=db,
            username=body.username,
            email=body.email,
            password_hash=hash_password(body.password, rounds=settings.bcrypt_rounds),
            channel_name=body.channel_name,
            profile_picture=settings.default_profile_picture,
        )
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email/username
        await db.rollback()
        raise HTTPException(status_code=400, detail="Email or username already taken")

    logger.info(f"User registered: user_id={user.id}, ip={ip_address}")
    return _auth_response("User created successfully", user, settings)


@router.post("/login", response_model=AuthResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Exchange email and password for a token.

    Rate limit: 10 requests per minute per IP.

    Raises:
        HTTPException: 400 if the email or password is wrong
    """
    ip_address = request.client.host if request.client else "unknown"

    user = await crud.get_user_by_email(db, body.email)
    if not user or not verify_password(body.password, user.password_hash):
        logger.info(f"Failed login attempt from ip={ip_address}")
        raise HTTPException(status_code=400, detail="Email or password is wrong")

    logger.info(f"User logged in: user_id={user.id}, ip={ip_address}")
    return _auth_response("Logged in successfully", user, settings)


@router.get("/me", response_model=ProfileResponse)
async def get_current_user(user: User = Depends(require_user)):
    """
    Get current authenticated user information.

    Returns the user's profile without the password hash.
    """
    return ProfileResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        channel_name=user.channel_name,
        channel_description=user.channel_description,
        profile_picture=user.profile_picture,
        created_at=user.created_at.isoformat(),
    )
