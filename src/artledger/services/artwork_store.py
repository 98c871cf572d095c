"""Persistence for artworks, ledger records, and purchase records.

``ArtworkStore`` wraps a single ``AsyncSession``.  Writes are flushed so
that ids and constraints are checked immediately, but nothing becomes
durable until ``commit()``; the workflow calls it once per operation.

All database faults surface as ``StorageError``.  Unique-constraint
violations surface as ``ConstraintViolation`` naming the constraint, which
lets callers turn a lost race into the matching business error.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artledger.errors import ConstraintViolation, StorageError
from artledger.models import Artwork, LedgerRecord, PurchaseRecord, User
from artledger.models.artwork import (
    UQ_BUYER_ARTWORK,
    UQ_CONTENT_HASH,
    UQ_LEDGER_TRANSACTION,
)

log = structlog.get_logger()

# Postgres reports the constraint name; SQLite reports the column list.
_CONSTRAINT_MARKERS = {
    UQ_CONTENT_HASH: (UQ_CONTENT_HASH, "artworks.content_hash"),
    UQ_LEDGER_TRANSACTION: (UQ_LEDGER_TRANSACTION, "ledger_records.transaction_id"),
    UQ_BUYER_ARTWORK: (
        UQ_BUYER_ARTWORK,
        "artwork_purchases.buyer_id, artwork_purchases.artwork_id",
    ),
}


def _violated_constraint(exc: IntegrityError) -> Optional[str]:
    detail = str(exc.orig)
    for name, markers in _CONSTRAINT_MARKERS.items():
        if any(marker in detail for marker in markers):
            return name
    return None


def _newest_first():
    return (Artwork.created_at.desc(), Artwork.id.desc())


class ArtworkStore:
    """Repository over the artworks, ledger_records and artwork_purchases tables."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @asynccontextmanager
    async def _guard(self, operation: str, **context) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as exc:
            constraint = _violated_constraint(exc)
            log.warning(
                "storage_constraint_violation",
                operation=operation,
                constraint=constraint,
                **context,
            )
            await self._db.rollback()
            raise ConstraintViolation(
                f"Constraint violated during {operation}", constraint
            ) from exc
        except SQLAlchemyError as exc:
            log.error("storage_error", operation=operation, error=str(exc), **context)
            raise StorageError(f"Storage failure during {operation}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_user(self, user_id: int) -> Optional[User]:
        async with self._guard("find_user", user_id=user_id):
            result = await self._db.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

    async def find_by_content_hash(self, content_hash: str) -> Optional[Artwork]:
        async with self._guard("find_by_content_hash", content_hash=content_hash):
            result = await self._db.execute(
                select(Artwork).where(Artwork.content_hash == content_hash)
            )
            return result.scalar_one_or_none()

    async def find_by_id(self, artwork_id: int) -> Optional[Artwork]:
        """Artwork with owner, ledger records and purchases loaded."""
        async with self._guard("find_by_id", artwork_id=artwork_id):
            result = await self._db.execute(
                select(Artwork).where(Artwork.id == artwork_id)
            )
            return result.scalar_one_or_none()

    async def find_by_transaction_id(self, transaction_id: str) -> Optional[Artwork]:
        """Resolve a ledger transaction id to the artwork it registered."""
        async with self._guard("find_by_transaction_id", transaction_id=transaction_id):
            result = await self._db.execute(
                select(Artwork)
                .join(LedgerRecord, LedgerRecord.artwork_id == Artwork.id)
                .where(LedgerRecord.transaction_id == transaction_id)
            )
            return result.scalar_one_or_none()

    async def list_by_owner(self, user_id: int) -> list[Artwork]:
        async with self._guard("list_by_owner", user_id=user_id):
            result = await self._db.execute(
                select(Artwork)
                .where(Artwork.user_id == user_id)
                .order_by(*_newest_first())
            )
            return list(result.scalars().all())

    async def list_for_sale(self) -> list[Artwork]:
        async with self._guard("list_for_sale"):
            result = await self._db.execute(
                select(Artwork)
                .where(Artwork.is_listed_for_sale.is_(True), Artwork.sale_price > 0)
                .order_by(*_newest_first())
            )
            return list(result.scalars().all())

    async def list_purchased_by(self, user_id: int) -> list[Artwork]:
        async with self._guard("list_purchased_by", user_id=user_id):
            result = await self._db.execute(
                select(Artwork)
                .join(PurchaseRecord, PurchaseRecord.artwork_id == Artwork.id)
                .where(PurchaseRecord.buyer_id == user_id)
                .order_by(*_newest_first())
            )
            return list(result.scalars().all())

    async def list_purchase_records_for_seller(self, seller_id: int) -> list[PurchaseRecord]:
        """Purchases of any artwork owned by *seller_id*, newest first."""
        async with self._guard("list_purchase_records_for_seller", seller_id=seller_id):
            result = await self._db.execute(
                select(PurchaseRecord)
                .join(Artwork, Artwork.id == PurchaseRecord.artwork_id)
                .where(Artwork.user_id == seller_id)
                .order_by(PurchaseRecord.purchase_date.desc(), PurchaseRecord.id.desc())
            )
            return list(result.scalars().all())

    async def has_purchased(self, user_id: int, artwork_id: int) -> bool:
        async with self._guard("has_purchased", user_id=user_id, artwork_id=artwork_id):
            result = await self._db.execute(
                select(PurchaseRecord.id)
                .where(
                    PurchaseRecord.buyer_id == user_id,
                    PurchaseRecord.artwork_id == artwork_id,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, artwork: Artwork) -> Artwork:
        """Stage a new artwork and flush so its id is assigned."""
        async with self._guard("add", content_hash=artwork.content_hash):
            self._db.add(artwork)
            await self._db.flush()
        return artwork

    async def update(self, artwork: Artwork) -> Artwork:
        async with self._guard("update", artwork_id=artwork.id):
            self._db.add(artwork)
            await self._db.flush()
        return artwork

    async def delete(self, artwork_id: int) -> bool:
        """Remove an artwork row; returns False when it does not exist."""
        async with self._guard("delete", artwork_id=artwork_id):
            artwork = await self._db.get(Artwork, artwork_id)
            if artwork is None:
                return False
            await self._db.delete(artwork)
            await self._db.flush()
        return True

    async def add_ledger_record(self, record: LedgerRecord) -> LedgerRecord:
        async with self._guard("add_ledger_record", transaction_id=record.transaction_id):
            self._db.add(record)
            await self._db.flush()
        return record

    async def add_purchase_record(self, record: PurchaseRecord) -> PurchaseRecord:
        async with self._guard(
            "add_purchase_record",
            artwork_id=record.artwork_id,
            buyer_id=record.buyer_id,
        ):
            self._db.add(record)
            await self._db.flush()
        return record

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self._db.commit()

    async def rollback(self) -> None:
        async with self._guard("rollback"):
            await self._db.rollback()
