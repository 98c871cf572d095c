"""User account model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from artledger.models.base import Base

if TYPE_CHECKING:
    from artledger.models.artwork import Artwork, PurchaseRecord

ROLE_SELLER = "Seller"
ROLE_BUYER = "Buyer"
ROLES = (ROLE_SELLER, ROLE_BUYER)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=ROLE_BUYER, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("role IN ('Seller', 'Buyer')", name="ck_users_role"),
    )

    artworks: Mapped[list[Artwork]] = relationship(back_populates="owner")
    purchases: Mapped[list[PurchaseRecord]] = relationship(back_populates="buyer")
