"""Shared FastAPI dependencies for authenticated routes and the artwork workflow."""

from __future__ import annotations

from typing import Callable

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from artledger.config import settings
from artledger.database import get_db
from artledger.integrations.ledger import LedgerClient, SimulatedLedger
from artledger.models import User
from artledger.services.artwork_service import ArtworkService
from artledger.services.artwork_store import ArtworkStore
from artledger.services.audit_logger import AuditLogger
from artledger.services.auth_service import get_user, verify_token
from artledger.services.cache import Cache, MemoryCache
from artledger.services.image_storage import ImageStorage

# Optional bearer scheme -- auto_error=False so we can fall back to cookies
_bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    access_token: str | None = Cookie(default=None),
) -> User:
    """Extract and validate the access token, then return the User.

    Token sources (checked in order):
      1. Authorization: Bearer <token> header
      2. ``access_token`` cookie

    Raises HTTPException(401) if no valid token is found or the user no
    longer exists.
    """
    token: str | None = None

    if credentials is not None:
        token = credentials.credentials
    elif access_token is not None:
        token = access_token

    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(token, "access")

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    user = await get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    return user


def require_role(role: str) -> Callable:
    """Dependency factory: the current user must hold *role* (403 otherwise)."""

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role} role required",
            )
        return current_user

    return _checker


# ---------------------------------------------------------------------------
# Workflow collaborators (lifespan populates app.state)
# ---------------------------------------------------------------------------

def get_cache(request: Request) -> Cache:
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        cache = MemoryCache()
        request.app.state.cache = cache
    return cache


def get_ledger(request: Request) -> LedgerClient:
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        ledger = SimulatedLedger(
            marketplace_account_id=settings.LEDGER_MARKETPLACE_ACCOUNT_ID,
            latency_scale=settings.LEDGER_LATENCY_SCALE,
        )
        request.app.state.ledger = ledger
    return ledger


def get_image_storage() -> ImageStorage:
    return ImageStorage(settings.STORAGE_ROOT, settings.BASE_URL)


def get_artwork_service(
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
    images: ImageStorage = Depends(get_image_storage),
    cache: Cache = Depends(get_cache),
) -> ArtworkService:
    return ArtworkService(
        ArtworkStore(db),
        ledger,
        images,
        cache,
        AuditLogger(),
        marketplace_account_id=settings.LEDGER_MARKETPLACE_ACCOUNT_ID,
        seller_account_base=settings.LEDGER_SELLER_ACCOUNT_BASE,
    )
