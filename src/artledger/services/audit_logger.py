"""Structured audit logger for registration, listing, and purchase events.

Every entry carries an ``audit: true`` flag so production log pipelines
can filter on it easily.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog


log = structlog.get_logger()


class AuditLogger:
    """Structured audit logger for artwork events.

    All methods are synchronous -- they only emit log lines and perform
    no I/O beyond writing to the configured structlog sink.
    """

    def _emit(self, event_type: str, **fields) -> None:
        log.info(
            "audit_event",
            event_type=event_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
            audit=True,
            **fields,
        )

    def log_upload(self, artwork_id: int, owner_id: int, content_hash: str) -> None:
        self._emit(
            "artwork_upload",
            artwork_id=artwork_id,
            owner_id=owner_id,
            content_hash=content_hash,
        )

    def log_ledger_registration(self, artwork_id: int, transaction_id: str) -> None:
        self._emit(
            "ledger_registration",
            artwork_id=artwork_id,
            transaction_id=transaction_id,
        )

    def log_listing(
        self,
        artwork_id: int,
        owner_id: int,
        price: Optional[Decimal],
    ) -> None:
        """Record a listing change; a ``None`` price means the artwork was delisted."""
        self._emit(
            "listing_change",
            artwork_id=artwork_id,
            owner_id=owner_id,
            listed=price is not None,
            price=str(price) if price is not None else None,
        )

    def log_purchase(
        self,
        artwork_id: int,
        buyer_id: int,
        seller_id: int,
        amount: Decimal,
        transaction_id: Optional[str],
    ) -> None:
        self._emit(
            "purchase",
            artwork_id=artwork_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            amount=str(amount),
            transaction_id=transaction_id,
        )
