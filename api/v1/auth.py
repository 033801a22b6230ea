from fastapi import APIRouter, HTTPException, status
from jose import JWTError

from core.logger import app_logger
from core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    token_user_id,
    verify_password,
)
from models.user import User
from schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, TokenResponse

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest):
    email = data.email.strip().lower()
    if await User.filter(email=email).exists():
        raise HTTPException(status_code=409, detail="Email is already registered")

    user = await User.create(email=email, password_hash=hash_password(data.password))
    app_logger.info(f"Registered user {user.id}")
    return {"userId": str(user.id)}


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest):
    user = await User.get_or_none(email=data.email.strip().lower())
    if user is None or not user.is_active or not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenResponse(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
        user_id=str(user.id),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest):
    invalid = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid refresh token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(data.refresh_token)
    except JWTError:
        raise invalid
    user_id = token_user_id(payload)
    if payload.get("type") != "refresh" or user_id is None:
        raise invalid

    user = await User.get_or_none(id=user_id)
    if user is None or not user.is_active:
        raise invalid

    return TokenResponse(
        access_token=create_access_token(user.id),
        refresh_token=data.refresh_token,
        user_id=str(user.id),
    )
