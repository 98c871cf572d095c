import io
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from starlette.datastructures import Headers, UploadFile

from artledger.config import settings

settings.JWT_SECRET_KEY = "test-secret-key"

from artledger.api.dependencies import (  # noqa: E402
    get_cache,
    get_image_storage,
    get_ledger,
)
from artledger.database import get_db  # noqa: E402
from artledger.integrations.ledger import SimulatedLedger  # noqa: E402
from artledger.main import app  # noqa: E402
from artledger.models import Base, User  # noqa: E402
from artledger.services.artwork_service import ArtworkService  # noqa: E402
from artledger.services.artwork_store import ArtworkStore  # noqa: E402
from artledger.services.audit_logger import AuditLogger  # noqa: E402
from artledger.services.cache import MemoryCache  # noqa: E402
from artledger.services.image_storage import ImageStorage  # noqa: E402

MARKETPLACE_ACCOUNT = "0.0.6945291"


def make_upload(data: bytes, filename: str = "artwork.png", content_type: str = "image/png"):
    """An in-memory ``UploadFile`` like the one FastAPI hands to routes."""
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_session(tmp_path):
    """A session bound to a throwaway SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
    await engine.dispose()


async def _add_user(db_session, username: str, role: str) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash="not-a-real-hash",
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def seller(db_session):
    return await _add_user(db_session, "seller", "Seller")


@pytest.fixture
async def buyer(db_session):
    return await _add_user(db_session, "buyer", "Buyer")


@pytest.fixture
async def other_buyer(db_session):
    return await _add_user(db_session, "other_buyer", "Buyer")


@pytest.fixture
def ledger():
    return SimulatedLedger(marketplace_account_id=MARKETPLACE_ACCOUNT, latency_scale=0)


@pytest.fixture
def images(tmp_path):
    return ImageStorage(tmp_path / "storage", "http://test")


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def store(db_session):
    return ArtworkStore(db_session)


@pytest.fixture
def service(store, ledger, images, cache):
    return ArtworkService(
        store,
        ledger,
        images,
        cache,
        AuditLogger(),
        marketplace_account_id=MARKETPLACE_ACCOUNT,
        seller_account_base=1_000_000,
    )


@pytest.fixture
async def listed_artwork(service, seller):
    """An artwork uploaded by ``seller`` and listed at 2.5."""
    uploaded = await service.upload(make_upload(b"abc123"), seller.id)
    return await service.list_for_sale(uploaded.id, Decimal("2.5"), seller.id)


@pytest.fixture
async def client(db_session, ledger, images, cache):
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_image_storage] = lambda: images
    app.dependency_overrides[get_cache] = lambda: cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
