"""Distributed-ledger integration used for hash notarization and payments.

Only a simulated client exists.  ``SimulatedLedger`` sleeps to mimic
network latency and fabricates identifiers shaped like real ledger ids;
it never settles value and none of its output is cryptographically
meaningful.  The workflow depends on ``LedgerClient`` alone, so a real
client can replace the simulation without touching callers.

Usage:
    from artledger.integrations.ledger import SimulatedLedger

    ledger = SimulatedLedger(marketplace_account_id="0.0.6945291")
    result = await ledger.register_hash(content_hash, "sunset.png")
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

import structlog

from artledger.errors import PaymentError

log = structlog.get_logger()

MARKETPLACE_BALANCE = Decimal("100.0")
DEFAULT_BALANCE = Decimal("50.0")

# Simulated round-trip latencies in seconds.
REGISTER_DELAY = 1.0
TRANSFER_DELAY = 1.5
VERIFY_DELAY = 0.5
BALANCE_DELAY = 0.3


@dataclass(frozen=True)
class LedgerTransactionResult:
    success: bool
    transaction_id: Optional[str] = None
    file_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class LedgerVerificationResult:
    success: bool
    is_verified: bool = False
    file_contents: Optional[str] = None
    error: Optional[str] = None


class LedgerClient(Protocol):
    """Structural interface for notarization and value-transfer networks."""

    async def register_hash(self, content_hash: str, label: str) -> LedgerTransactionResult: ...

    async def transfer(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
    ) -> LedgerTransactionResult: ...

    async def get_balance(self, account_id: str) -> Decimal: ...

    async def verify_by_file_id(
        self, file_id: str, expected_hash: str
    ) -> LedgerVerificationResult: ...

    async def verify_by_transaction_id(
        self, transaction_id: str, expected_hash: str
    ) -> LedgerVerificationResult: ...


def seller_account_id(owner_id: int, base: int) -> str:
    """Synthetic account id for a seller, derived from the user id."""
    return f"0.0.{base + owner_id}"


class SimulatedLedger:
    """Test double standing in for a real ledger client."""

    def __init__(
        self,
        marketplace_account_id: str,
        latency_scale: float = 1.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._marketplace_account_id = marketplace_account_id
        self._latency_scale = latency_scale
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Identifier fabrication
    # ------------------------------------------------------------------

    def _entity_id(self) -> str:
        return f"0.0.{self._rng.randint(1_000_000, 9_999_999)}"

    def _transaction_id(self) -> str:
        return (
            f"{self._entity_id()}@{int(time.time())}."
            f"{self._rng.randint(100_000, 999_999)}"
        )

    async def _latency(self, seconds: float) -> None:
        await asyncio.sleep(seconds * self._latency_scale)

    # ------------------------------------------------------------------
    # Notarization
    # ------------------------------------------------------------------

    async def register_hash(self, content_hash: str, label: str) -> LedgerTransactionResult:
        """Pretend to record *content_hash* in a ledger file."""
        try:
            await self._latency(REGISTER_DELAY)
            result = LedgerTransactionResult(
                success=True,
                transaction_id=self._transaction_id(),
                file_id=self._entity_id(),
            )
            log.info(
                "ledger_hash_registered",
                label=label,
                content_hash=content_hash,
                transaction_id=result.transaction_id,
                file_id=result.file_id,
            )
            return result
        except Exception as exc:
            log.error("ledger_register_failed", label=label, error=str(exc))
            return LedgerTransactionResult(success=False, error=str(exc))

    async def verify_by_file_id(
        self, file_id: str, expected_hash: str
    ) -> LedgerVerificationResult:
        try:
            await self._latency(VERIFY_DELAY)
            contents = (
                "ArtLedger Digital Artwork Registration\n"
                "File: verified_file\n"
                f"SHA256 Hash: {expected_hash}\n"
                f"Timestamp: {datetime.now(timezone.utc).isoformat()}"
            )
            return LedgerVerificationResult(
                success=True, is_verified=True, file_contents=contents
            )
        except Exception as exc:
            log.error("ledger_verify_failed", file_id=file_id, error=str(exc))
            return LedgerVerificationResult(success=False, error=str(exc))

    async def verify_by_transaction_id(
        self, transaction_id: str, expected_hash: str
    ) -> LedgerVerificationResult:
        try:
            await self._latency(VERIFY_DELAY)
            return LedgerVerificationResult(success=True, is_verified=True)
        except Exception as exc:
            log.error(
                "ledger_verify_failed", transaction_id=transaction_id, error=str(exc)
            )
            return LedgerVerificationResult(success=False, error=str(exc))

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def transfer(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
    ) -> LedgerTransactionResult:
        """Pretend to move *amount* between accounts; no funds are checked."""
        try:
            await self._latency(TRANSFER_DELAY)
            transaction_id = self._transaction_id()
            log.info(
                "ledger_transfer_simulated",
                from_account=from_account,
                to_account=to_account,
                amount=str(amount),
                transaction_id=transaction_id,
            )
            return LedgerTransactionResult(success=True, transaction_id=transaction_id)
        except Exception as exc:
            log.error(
                "ledger_transfer_failed",
                from_account=from_account,
                to_account=to_account,
                error=str(exc),
            )
            return LedgerTransactionResult(
                success=False, error=f"Purchase transaction failed: {exc}"
            )

    async def get_balance(self, account_id: str) -> Decimal:
        """Fixed balance: 100 for the marketplace account, 50 for any other."""
        try:
            await self._latency(BALANCE_DELAY)
        except Exception as exc:
            log.error("ledger_balance_failed", account_id=account_id, error=str(exc))
            raise PaymentError(f"Failed to get account balance: {exc}") from exc
        if account_id == self._marketplace_account_id:
            return MARKETPLACE_BALANCE
        return DEFAULT_BALANCE
