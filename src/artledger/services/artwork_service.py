"""Artwork workflow -- upload, verification, listing, purchase, download.

Upload sequence:
1. Hash the stream (SHA-256), reject when the hash is already registered
2. Insert the artwork row and flush so it gets an id
3. Save the image under that id (failure is logged, the row survives)
4. Register the hash on the ledger (failure is logged, the row survives)
5. Commit once, then invalidate the owner and marketplace caches

Purchases check ownership, listing state, previous purchases and balance
before the ledger transfer; the purchase row is written only after the
transfer succeeds.  The unique (buyer, artwork) constraint is the final
word on duplicate purchases.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Awaitable, Callable, Optional

import structlog
from pydantic import BaseModel, PlainSerializer

from artledger.errors import (
    AlreadyPurchasedError,
    ConstraintViolation,
    DuplicateArtworkError,
    ForbiddenError,
    ImageStorageError,
    InsufficientFundsError,
    NotAvailableError,
    NotFoundError,
    PaymentError,
    StorageError,
    ValidationError,
)
from artledger.integrations.ledger import LedgerClient, seller_account_id
from artledger.models import Artwork, LedgerRecord, PurchaseRecord
from artledger.models.artwork import UQ_BUYER_ARTWORK, UQ_CONTENT_HASH
from artledger.services import cache as keys
from artledger.services.artwork_store import ArtworkStore
from artledger.services.audit_logger import AuditLogger
from artledger.services.cache import Cache
from artledger.services.content_hasher import (
    AsyncReadable,
    compute_content_hash,
    compute_perceptual_hash,
    hash_and_measure,
)
from artledger.services.image_storage import ImageStorage

log = structlog.get_logger()

NOT_REGISTERED = "NOT_REGISTERED"

MARKETPLACE_TTL = 180
USER_LISTING_TTL = 120
PURCHASED_TTL = 120
SELLER_STATS_TTL = 120
IMAGE_EXISTS_TTL = 300
VERIFY_TTL = 300

# Amounts travel as JSON numbers.
Money = Annotated[
    Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")
]


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class UserSummary(BaseModel):
    id: int
    username: str
    email: str
    role: str
    created_at: Optional[datetime] = None


class ArtworkResponse(BaseModel):
    id: int
    file_name: str
    file_type: str
    file_size: int
    content_hash: str
    perceptual_hash: Optional[str] = None
    image_url: str
    image_path: Optional[str] = None
    created_at: datetime
    is_listed_for_sale: bool
    sale_price: Optional[Money] = None
    transaction_id: str = NOT_REGISTERED
    owner: UserSummary


class VerificationResult(BaseModel):
    is_verified: bool
    message: str
    artwork: Optional[ArtworkResponse] = None


class PurchaseResult(BaseModel):
    success: bool
    message: str
    artwork: Optional[ArtworkResponse] = None
    transaction_id: str = ""
    amount: Money = Decimal("0")


class ArtworkDownload(BaseModel):
    id: int
    file_name: str
    file_type: str
    image_path: str


class SellerStats(BaseModel):
    total_sales: int
    total_revenue: Money
    listed_artworks: int


class ListForSaleRequest(BaseModel):
    price: Optional[Decimal] = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _require_positive(value: int, message: str) -> None:
    if value is None or value <= 0:
        raise ValidationError(message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ArtworkService:
    """Coordinates the store, ledger, image storage and caches."""

    def __init__(
        self,
        store: ArtworkStore,
        ledger: LedgerClient,
        images: ImageStorage,
        cache: Cache,
        audit: Optional[AuditLogger] = None,
        *,
        marketplace_account_id: str,
        seller_account_base: int,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._images = images
        self._cache = cache
        self._audit = audit or AuditLogger()
        self._marketplace_account_id = marketplace_account_id
        self._seller_account_base = seller_account_base

    # ------------------------------------------------------------------
    # Mapping and caching
    # ------------------------------------------------------------------

    def to_response(self, artwork: Artwork) -> ArtworkResponse:
        owner = artwork.owner
        return ArtworkResponse(
            id=artwork.id,
            file_name=artwork.file_name,
            file_type=artwork.file_type,
            file_size=artwork.file_size,
            content_hash=artwork.content_hash,
            perceptual_hash=artwork.perceptual_hash,
            image_url=self._images.get_image_url(artwork.image_path),
            image_path=artwork.image_path,
            created_at=artwork.created_at,
            is_listed_for_sale=artwork.is_listed_for_sale,
            sale_price=artwork.sale_price,
            transaction_id=artwork.ledger_transaction_id or NOT_REGISTERED,
            owner=UserSummary(
                id=owner.id,
                username=owner.username,
                email=owner.email,
                role=owner.role,
                created_at=owner.created_at,
            ),
        )

    async def _cached_listing(
        self,
        key: str,
        ttl_seconds: int,
        loader: Callable[[], Awaitable[list[Artwork]]],
    ) -> list[ArtworkResponse]:
        cached = await self._cache.get(key)
        if cached is not None:
            return [ArtworkResponse.model_validate(item) for item in cached]

        responses = [self.to_response(a) for a in await loader()]
        await self._cache.set(
            key, [r.model_dump(mode="json") for r in responses], ttl_seconds
        )
        return responses

    async def _invalidate(self, *cache_keys: str) -> None:
        for key in cache_keys:
            await self._cache.remove(key)

    @staticmethod
    def _verify_keys(artwork: Artwork) -> list[str]:
        """Verify cache entries that embed *artwork*'s listing state."""
        cache_keys = [keys.verify_key(artwork.content_hash, None)]
        if artwork.ledger_transaction_id:
            cache_keys.append(keys.verify_key(None, artwork.ledger_transaction_id))
        return cache_keys

    # ------------------------------------------------------------------
    # Upload and verification
    # ------------------------------------------------------------------

    async def upload(
        self,
        upload: Optional[AsyncReadable],
        owner_id: int,
        use_ledger: bool = True,
        *,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> ArtworkResponse:
        """Register an uploaded image for *owner_id*.

        ``file_name`` and ``content_type`` default to the upload's own
        ``filename`` / ``content_type`` attributes.
        """
        if upload is None:
            raise ValidationError("No file uploaded")
        _require_positive(owner_id, "Invalid user ID")

        file_name = file_name or getattr(upload, "filename", None) or "artwork"
        content_type = (
            content_type
            or getattr(upload, "content_type", None)
            or "application/octet-stream"
        )

        content_hash, size = await hash_and_measure(upload)
        if await self._store.find_by_content_hash(content_hash) is not None:
            log.info("artwork_duplicate_rejected", content_hash=content_hash)
            raise DuplicateArtworkError("This artwork has already been registered")

        owner = await self._store.find_user(owner_id)
        if owner is None:
            raise ValidationError("Invalid user ID")

        artwork = Artwork(
            user_id=owner_id,
            owner=owner,
            file_name=file_name,
            file_type=content_type,
            file_size=size,
            content_hash=content_hash,
            perceptual_hash=compute_perceptual_hash(file_name, size, content_type),
            created_at=_utcnow(),
            is_listed_for_sale=False,
            sale_price=None,
            ledger_records=[],
            purchases=[],
        )
        try:
            await self._store.add(artwork)
        except ConstraintViolation as exc:
            if exc.constraint == UQ_CONTENT_HASH:
                raise DuplicateArtworkError(
                    "This artwork has already been registered"
                ) from exc
            raise

        image_path = None
        try:
            image_path = await self._attach_image(upload, artwork, file_name)
            registered = use_ledger and await self._register_on_ledger(artwork)
            await self._store.commit()
        except ConstraintViolation as exc:
            # The store has already rolled back; the row is gone.
            await self._images.remove(image_path)
            if exc.constraint == UQ_CONTENT_HASH:
                raise DuplicateArtworkError(
                    "This artwork has already been registered"
                ) from exc
            raise
        except StorageError:
            await self._images.remove(image_path)
            await self._store.rollback()
            raise

        self._audit.log_upload(artwork.id, owner_id, content_hash)
        if registered:
            self._audit.log_ledger_registration(artwork.id, artwork.ledger_transaction_id)
        await self._invalidate(
            keys.user_artworks_key(owner_id),
            keys.MARKETPLACE_KEY,
            keys.seller_stats_key(owner_id),
        )
        log.info(
            "artwork_uploaded",
            artwork_id=artwork.id,
            owner_id=owner_id,
            content_hash=content_hash,
            transaction_id=artwork.ledger_transaction_id or NOT_REGISTERED,
        )
        return self.to_response(artwork)

    async def _attach_image(
        self, upload: AsyncReadable, artwork: Artwork, file_name: str
    ) -> Optional[str]:
        """Save the image and point *artwork* at it; None when the write failed."""
        try:
            image_path = await self._images.save_image(upload, artwork.id, file_name)
        except ImageStorageError as exc:
            log.error("image_save_failed", artwork_id=artwork.id, error=str(exc))
            return None
        artwork.image_path = image_path
        try:
            await self._store.update(artwork)
        except StorageError:
            await self._images.remove(image_path)
            raise
        return image_path

    async def _register_on_ledger(self, artwork: Artwork) -> bool:
        """Record a ledger registration; False when the ledger refused it."""
        result = await self._ledger.register_hash(artwork.content_hash, artwork.file_name)
        if not result.success or not result.transaction_id:
            log.warning(
                "ledger_registration_failed",
                artwork_id=artwork.id,
                error=result.error,
            )
            return False

        now = _utcnow()
        record = LedgerRecord(
            artwork=artwork,
            transaction_id=result.transaction_id,
            consensus_timestamp=now,
            memo=f"Artwork registration: {artwork.file_name}",
            node_status="SUCCESS",
            recorded_at=now,
        )
        await self._store.add_ledger_record(record)
        return True

    async def verify(
        self,
        file_hash: Optional[str] = None,
        transaction_id: Optional[str] = None,
        upload: Optional[AsyncReadable] = None,
    ) -> VerificationResult:
        """Look an artwork up by hash, ledger transaction id, or file bytes.

        The first non-empty input wins, in that order.  Successful hash and
        transaction-id lookups are cached; misses never are, so a freshly
        uploaded artwork verifies immediately.
        """
        file_hash = (file_hash or "").strip().lower() or None
        transaction_id = (transaction_id or "").strip() or None

        cache_key = None
        if file_hash or transaction_id:
            cache_key = keys.verify_key(file_hash, transaction_id)
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return VerificationResult.model_validate(cached)

        if file_hash:
            artwork = await self._store.find_by_content_hash(file_hash)
        elif transaction_id:
            artwork = await self._store.find_by_transaction_id(transaction_id)
        elif upload is not None:
            artwork = await self._store.find_by_content_hash(
                await compute_content_hash(upload)
            )
        else:
            raise ValidationError("Provide a file hash, a transaction ID or a file")

        if artwork is None:
            return VerificationResult(
                is_verified=False, message="Artwork not found in the system"
            )

        result = VerificationResult(
            is_verified=True,
            message="Artwork verified successfully",
            artwork=self.to_response(artwork),
        )
        if cache_key is not None:
            await self._cache.set(cache_key, result.model_dump(mode="json"), VERIFY_TTL)
        return result

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_user_artworks(self, user_id: int) -> list[ArtworkResponse]:
        _require_positive(user_id, "Invalid user ID")
        return await self._cached_listing(
            keys.user_artworks_key(user_id),
            USER_LISTING_TTL,
            lambda: self._store.list_by_owner(user_id),
        )

    async def list_marketplace(self) -> list[ArtworkResponse]:
        return await self._cached_listing(
            keys.MARKETPLACE_KEY, MARKETPLACE_TTL, self._store.list_for_sale
        )

    async def list_purchased(self, user_id: int) -> list[ArtworkResponse]:
        _require_positive(user_id, "Invalid user ID")
        return await self._cached_listing(
            keys.purchased_artworks_key(user_id),
            PURCHASED_TTL,
            lambda: self._store.list_purchased_by(user_id),
        )

    async def list_for_sale(
        self,
        artwork_id: int,
        price: Optional[Decimal],
        caller_id: int,
    ) -> ArtworkResponse:
        """List at *price*, or delist when *price* is ``None`` or zero."""
        _require_positive(artwork_id, "Invalid artwork ID")
        _require_positive(caller_id, "Invalid user ID")
        if price is not None and price < 0:
            raise ValidationError("Price must be greater than zero")

        artwork = await self._store.find_by_id(artwork_id)
        if artwork is None:
            raise NotFoundError("Artwork not found")
        if artwork.user_id != caller_id:
            raise ForbiddenError("You can only list your own artworks for sale")

        if price:
            artwork.is_listed_for_sale = True
            artwork.sale_price = price
        else:
            artwork.is_listed_for_sale = False
            artwork.sale_price = None

        await self._store.update(artwork)
        await self._store.commit()
        await self._invalidate(
            keys.user_artworks_key(caller_id),
            keys.MARKETPLACE_KEY,
            keys.seller_stats_key(caller_id),
            *self._verify_keys(artwork),
        )
        self._audit.log_listing(artwork.id, caller_id, artwork.sale_price)
        return self.to_response(artwork)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    async def purchase(self, artwork_id: int, buyer_id: int) -> PurchaseResult:
        _require_positive(artwork_id, "Invalid artwork ID")
        _require_positive(buyer_id, "Invalid user ID")

        artwork = await self._store.find_by_id(artwork_id)
        if artwork is None:
            raise NotFoundError("Artwork not found")
        if artwork.user_id == buyer_id:
            raise ForbiddenError("You cannot purchase your own artwork")

        price = artwork.sale_price
        if not artwork.is_listed_for_sale or price is None or price <= 0:
            raise NotAvailableError("Artwork is not available for purchase")
        if await self._store.has_purchased(buyer_id, artwork_id):
            raise AlreadyPurchasedError("You have already purchased this artwork")

        buyer_account = self._marketplace_account_id
        seller_account = seller_account_id(artwork.user_id, self._seller_account_base)

        balance = await self._ledger.get_balance(buyer_account)
        if balance < price:
            raise InsufficientFundsError(
                f"Insufficient HBAR balance. Required: {price} HBAR, "
                f"Available: {balance} HBAR"
            )

        transfer = await self._ledger.transfer(buyer_account, seller_account, price)
        if not transfer.success:
            log.error(
                "purchase_payment_failed",
                artwork_id=artwork_id,
                buyer_id=buyer_id,
                error=transfer.error,
            )
            raise PaymentError(f"Payment failed: {transfer.error}")

        seller_id = artwork.user_id
        response = self.to_response(artwork)
        record = PurchaseRecord(
            artwork_id=artwork_id,
            buyer_id=buyer_id,
            purchase_price=price,
            purchase_date=_utcnow(),
            transaction_id=transfer.transaction_id,
        )
        try:
            await self._store.add_purchase_record(record)
            await self._store.commit()
        except ConstraintViolation as exc:
            if exc.constraint == UQ_BUYER_ARTWORK:
                raise AlreadyPurchasedError(
                    "You have already purchased this artwork"
                ) from exc
            raise

        await self._invalidate(
            keys.MARKETPLACE_KEY,
            keys.purchased_artworks_key(buyer_id),
            keys.user_artworks_key(seller_id),
            keys.seller_stats_key(seller_id),
        )
        self._audit.log_purchase(
            artwork_id, buyer_id, seller_id, price, transfer.transaction_id
        )
        return PurchaseResult(
            success=True,
            message="Artwork purchased successfully!",
            artwork=response,
            transaction_id=transfer.transaction_id or "",
            amount=price,
        )

    # ------------------------------------------------------------------
    # Downloads and images
    # ------------------------------------------------------------------

    async def get_for_download(
        self, artwork_id: int, requester_id: int
    ) -> Optional[ArtworkDownload]:
        """Download descriptor for the owner or a buyer; None if the artwork is unknown.

        Anyone else gets ``ForbiddenError``.
        """
        _require_positive(artwork_id, "Invalid artwork ID")
        _require_positive(requester_id, "Invalid user ID")

        artwork = await self._store.find_by_id(artwork_id)
        if artwork is None:
            return None
        if artwork.user_id != requester_id and not await self._store.has_purchased(
            requester_id, artwork_id
        ):
            raise ForbiddenError("You do not have permission to download this artwork")
        if not artwork.image_path:
            raise NotFoundError("Artwork image not found")

        return ArtworkDownload(
            id=artwork.id,
            file_name=artwork.file_name,
            file_type=artwork.file_type,
            image_path=artwork.image_path,
        )

    async def read_image(self, image_path: str, ttl_seconds: int) -> Optional[bytes]:
        key = keys.image_key(image_path)
        cached = await self._cache.get(key)
        if cached is not None:
            return cached
        data = await self._images.read_bytes(image_path)
        if data is not None:
            await self._cache.set(key, data, ttl_seconds)
        return data

    async def image_exists(self, image_path: str) -> bool:
        key = keys.image_exists_key(image_path)
        cached = await self._cache.get(key)
        if cached is not None:
            return bool(cached)
        exists = self._images.exists(image_path)
        await self._cache.set(key, exists, IMAGE_EXISTS_TTL)
        return exists

    # ------------------------------------------------------------------
    # Seller statistics
    # ------------------------------------------------------------------

    async def seller_stats(self, user_id: int) -> SellerStats:
        _require_positive(user_id, "Invalid user ID")
        key = keys.seller_stats_key(user_id)
        cached: Any = await self._cache.get(key)
        if cached is not None:
            return SellerStats.model_validate(cached)

        sales = await self._store.list_purchase_records_for_seller(user_id)
        artworks = await self._store.list_by_owner(user_id)
        stats = SellerStats(
            total_sales=len(sales),
            total_revenue=sum((p.purchase_price for p in sales), Decimal("0")),
            listed_artworks=sum(
                1
                for a in artworks
                if a.is_listed_for_sale and a.sale_price is not None and a.sale_price > 0
            ),
        )
        await self._cache.set(key, stats.model_dump(mode="json"), SELLER_STATS_TTL)
        return stats
