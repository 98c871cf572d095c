"""Authentication API router -- /api/auth/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from artledger.api.dependencies import get_current_user
from artledger.config import settings
from artledger.database import get_db
from artledger.models import User
from artledger.services.auth_service import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
    authenticate_user,
    create_access_token,
    register_user,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_token_cookie(response: Response, auth: AuthResponse) -> None:
    """Set an httpOnly, SameSite=Strict cookie carrying the access token."""
    response.set_cookie(
        key="access_token",
        value=auth.access_token,
        httponly=True,
        secure=settings.APP_ENV != "development",
        samesite="strict",
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
        path="/",
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    request: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Register a new account and log it in."""
    auth = await register_user(db, request)
    _set_token_cookie(response, auth)
    return auth


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Authenticate and return a JWT (also sets an httpOnly cookie)."""
    user = await authenticate_user(db, request.email, request.password)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    auth = create_access_token(user)
    _set_token_cookie(response, auth)
    return auth


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(response: Response) -> dict:
    """Clear the token cookie; bearer tokens simply expire."""
    response.delete_cookie("access_token", path="/")
    return {"message": "Successfully logged out"}
