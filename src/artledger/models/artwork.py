"""Artwork, ledger record, and purchase record models."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from artledger.models.base import Base

if TYPE_CHECKING:
    from artledger.models.user import User

# Constraint names are matched when translating IntegrityError.
UQ_CONTENT_HASH = "uq_artworks_content_hash"
UQ_LEDGER_TRANSACTION = "uq_ledger_records_transaction_id"
UQ_BUYER_ARTWORK = "uq_artwork_purchases_buyer_artwork"

MONEY = Numeric(18, 8)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Artwork(Base):
    __tablename__ = "artworks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    perceptual_hash: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    is_listed_for_sale: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    sale_price: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)

    __table_args__ = (
        UniqueConstraint("content_hash", name=UQ_CONTENT_HASH),
        CheckConstraint(
            "(is_listed_for_sale = false AND sale_price IS NULL) "
            "OR (is_listed_for_sale = true AND sale_price > 0)",
            name="ck_artworks_listing_price",
        ),
        Index("ix_artworks_listed", "is_listed_for_sale", "created_at"),
    )

    owner: Mapped[User] = relationship(back_populates="artworks", lazy="selectin")
    ledger_records: Mapped[list[LedgerRecord]] = relationship(
        back_populates="artwork", lazy="selectin", order_by="LedgerRecord.id"
    )
    purchases: Mapped[list[PurchaseRecord]] = relationship(
        back_populates="artwork", lazy="selectin"
    )

    @property
    def ledger_transaction_id(self) -> Optional[str]:
        """Transaction id of the first ledger registration, if any."""
        if not self.ledger_records:
            return None
        return self.ledger_records[0].transaction_id


class LedgerRecord(Base):
    """Immutable -- written once after a successful hash registration."""

    __tablename__ = "ledger_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artwork_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artworks.id"), nullable=False, index=True
    )
    transaction_id: Mapped[str] = mapped_column(String(100), nullable=False)
    consensus_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    memo: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    node_status: Mapped[str] = mapped_column(
        String(50), default="SUCCESS", nullable=False
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("transaction_id", name=UQ_LEDGER_TRANSACTION),
    )

    artwork: Mapped[Artwork] = relationship(back_populates="ledger_records")


class PurchaseRecord(Base):
    __tablename__ = "artwork_purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artwork_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artworks.id"), nullable=False, index=True
    )
    buyer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    purchase_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint("buyer_id", "artwork_id", name=UQ_BUYER_ARTWORK),
        CheckConstraint("purchase_price > 0", name="ck_purchase_price_positive"),
    )

    artwork: Mapped[Artwork] = relationship(back_populates="purchases")
    buyer: Mapped[User] = relationship(back_populates="purchases")
