"""Tests for the simulated ledger client."""

import random
import re
from decimal import Decimal
from unittest.mock import patch

import pytest

from artledger.errors import PaymentError
from artledger.integrations.ledger import SimulatedLedger, seller_account_id

TXN_PATTERN = re.compile(r"^0\.0\.\d{7}@\d+\.\d{6}$")
MARKETPLACE = "0.0.6945291"


@pytest.fixture
def sim():
    return SimulatedLedger(MARKETPLACE, latency_scale=0, rng=random.Random(7))


@pytest.mark.asyncio
async def test_register_hash_returns_ledger_shaped_ids(sim):
    result = await sim.register_hash("a" * 64, "sunset.png")
    assert result.success is True
    assert TXN_PATTERN.match(result.transaction_id)
    assert re.match(r"^0\.0\.\d{7}$", result.file_id)
    assert result.error is None


@pytest.mark.asyncio
async def test_transaction_ids_differ_between_calls(sim):
    first = await sim.register_hash("a" * 64, "x")
    second = await sim.register_hash("a" * 64, "x")
    assert first.transaction_id != second.transaction_id


@pytest.mark.asyncio
async def test_transfer_succeeds_without_checking_funds(sim):
    result = await sim.transfer(MARKETPLACE, "0.0.1000001", Decimal("1000"))
    assert result.success is True
    assert TXN_PATTERN.match(result.transaction_id)


@pytest.mark.asyncio
async def test_balance_is_fixed_per_account(sim):
    assert await sim.get_balance(MARKETPLACE) == Decimal("100")
    assert await sim.get_balance("0.0.1234567") == Decimal("50")


@pytest.mark.asyncio
async def test_verify_by_file_id_embeds_expected_hash(sim):
    result = await sim.verify_by_file_id("0.0.1234567", "f" * 64)
    assert result.is_verified is True
    assert "f" * 64 in result.file_contents


@pytest.mark.asyncio
async def test_verify_by_transaction_id(sim):
    result = await sim.verify_by_transaction_id("0.0.1234567@1.123456", "f" * 64)
    assert result.success is True
    assert result.is_verified is True


@pytest.mark.asyncio
async def test_failures_become_unsuccessful_results(sim):
    with patch.object(sim, "_latency", side_effect=RuntimeError("network down")):
        registered = await sim.register_hash("a" * 64, "x")
        transferred = await sim.transfer(MARKETPLACE, "0.0.1", Decimal("1"))
        verified = await sim.verify_by_file_id("0.0.1", "a" * 64)

    assert registered.success is False
    assert "network down" in registered.error
    assert transferred.success is False
    assert transferred.error.startswith("Purchase transaction failed")
    assert verified.success is False
    assert verified.is_verified is False


@pytest.mark.asyncio
async def test_balance_failure_raises_payment_error(sim):
    with patch.object(sim, "_latency", side_effect=RuntimeError("timeout")):
        with pytest.raises(PaymentError):
            await sim.get_balance(MARKETPLACE)


def test_seller_account_id_is_derived_from_owner():
    assert seller_account_id(7, 1_000_000) == "0.0.1000007"
