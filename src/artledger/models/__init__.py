"""ORM models package -- re-exports all models and the Base class."""

from artledger.models.base import Base
from artledger.models.user import User
from artledger.models.artwork import Artwork, LedgerRecord, PurchaseRecord

__all__ = [
    "Base",
    "User",
    "Artwork",
    "LedgerRecord",
    "PurchaseRecord",
]
