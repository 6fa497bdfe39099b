"""
Tests for the claim verifier.

============================================================
PURPOSE
============================================================
Every path of VALIDATE -> DEDUPE -> FETCH -> CONFIRM -> MATCH ->
PERSIST must end in exactly one outcome.

TEST PRINCIPLES:
- Input errors stop before any network access
- Infrastructure failures map to outcomes, never raise
- Concurrent claims of one tx insert once

============================================================
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest

from chain_adapters.exceptions import RpcUnavailableError
from chain_adapters.models import Transfer, TxLookup, TxStatus
from claims.verifier import ClaimOutcome, ClaimState, ClaimVerifier
from core.exceptions import StoreError
from ingestion.recorder import ContributionRecorder
from ingestion.wallet_directory import WalletDirectory
from storage.database import session_scope
from storage.repositories import ContributionRepository


PROJECT = "0x" + "ab" * 20
SECOND = "0x" + "cd" * 20
STRANGER = "0x" + "ef" * 20
TX = "0x" + "12" * 32
WEI = 10 ** 18


def _found(*transfers: Transfer, confirmations: int = 20) -> TxLookup:
    return TxLookup(
        tx_id=TX,
        status=TxStatus.FOUND,
        transfers=list(transfers),
        block_time=datetime(2024, 5, 1, tzinfo=timezone.utc),
        height=19_000_000,
        confirmations=confirmations,
    )


@pytest.fixture
def eth(fake_adapter):
    return fake_adapter("eth", tip=19_000_020)


@pytest.fixture
def verifier(session_factory, registry_with, eth):
    return ClaimVerifier(
        registry_with(eth),
        WalletDirectory(session_factory),
        ContributionRecorder(session_factory),
    )


def _rows(session_factory):
    with session_scope(session_factory) as session:
        return ContributionRepository(session).list_by_tx(TX)


# ============================================================
# VALIDATE
# ============================================================

class TestClaimValidation:
    """Test input rejection before any network access."""

    @pytest.mark.asyncio
    async def test_unknown_chain(self, verifier, eth):
        result = await verifier.verify("fantom", TX)
        assert result.outcome == ClaimOutcome.INVALID_PAYLOAD
        assert result.reason == "unsupported_chain"
        assert eth.tx_calls == 0

    @pytest.mark.asyncio
    async def test_bad_hash(self, verifier, eth):
        result = await verifier.verify("eth", "0x1234")
        assert result.outcome == ClaimOutcome.INVALID_PAYLOAD
        assert result.reason == "expect_0x64_hex"
        assert result.state == ClaimState.VALIDATE
        assert eth.tx_calls == 0

    @pytest.mark.asyncio
    async def test_note_too_long(self, verifier, eth):
        result = await verifier.verify("eth", TX, note="x" * 281)
        assert result.outcome == ClaimOutcome.INVALID_PAYLOAD
        assert result.reason == "note_too_long"
        assert eth.tx_calls == 0

    @pytest.mark.asyncio
    async def test_chain_without_adapter(self, verifier):
        """A known chain with no configured endpoints."""
        result = await verifier.verify("btc", "ab" * 32)
        assert result.outcome == ClaimOutcome.INVALID_PAYLOAD
        assert result.reason == "unsupported_chain"

    @pytest.mark.asyncio
    async def test_adapter_without_tx_lookup(self, verifier, eth):
        eth.SUPPORTS_TX_LOOKUP = False
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.INVALID_PAYLOAD
        assert result.reason == "unsupported_chain"
        assert eth.tx_calls == 0


# ============================================================
# FETCH / CONFIRM / MATCH
# ============================================================

class TestClaimLookup:
    """Test chain-side outcomes."""

    @pytest.mark.asyncio
    async def test_not_found(self, verifier, make_wallet):
        make_wallet("eth", PROJECT)
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.TX_NOT_FOUND
        assert result.message == "The hash of this transaction does not exist on the blockchain."

    @pytest.mark.asyncio
    async def test_failed_tx(self, verifier, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = TxLookup.failed(TX)
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.TX_NOT_FOUND
        assert result.reason == "tx_failed"

    @pytest.mark.asyncio
    async def test_pending(self, verifier, eth, make_wallet, session_factory):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = TxLookup.pending(TX, transfers=[Transfer(TX, PROJECT, WEI)])
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.TX_PENDING
        assert _rows(session_factory) == []

    @pytest.mark.asyncio
    async def test_below_confirmation_floor(self, verifier, eth, make_wallet, session_factory):
        """Mined but under min_confirmations is still pending."""
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = _found(Transfer(TX, PROJECT, WEI), confirmations=3)
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.TX_PENDING
        assert result.reason == "below_confirmation_floor"
        assert _rows(session_factory) == []

    @pytest.mark.asyncio
    async def test_rpc_unavailable(self, verifier, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = RpcUnavailableError("All RPC endpoints failed", chain="eth")
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.RPC_UNAVAILABLE
        assert result.code == "rpc_error"
        assert result.reason == "rpc_unavailable"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_not_project_wallet(self, verifier, eth, make_wallet, session_factory):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = _found(Transfer(TX, STRANGER, WEI))
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.NOT_PROJECT_WALLET
        assert _rows(session_factory) == []

    @pytest.mark.asyncio
    async def test_unsuccessful_transfer_ignored(self, verifier, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = _found(Transfer(TX, PROJECT, WEI, success=False))
        result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.NOT_PROJECT_WALLET


# ============================================================
# PERSIST
# ============================================================

class TestClaimPersist:
    """Test recording of verified claims."""

    @pytest.mark.asyncio
    async def test_inserted(self, verifier, eth, make_wallet, session_factory):
        wallet_id = make_wallet("ethereum", "0x" + PROJECT[2:].upper())
        eth.transactions[TX] = _found(Transfer(TX, PROJECT, 3 * WEI // 2))

        result = await verifier.verify("ETH", f"  {TX[2:]} ", note="  for the docs sprint  ")

        assert result.outcome == ClaimOutcome.INSERTED
        assert result.ok
        assert result.tx_hash == TX
        assert result.rows[0]["amount"] == "1.5"

        rows = _rows(session_factory)
        assert len(rows) == 1
        assert rows[0].wallet_id == wallet_id
        assert rows[0].amount == Decimal("1.5")
        assert rows[0].note == "for the docs sprint"
        assert rows[0].source == "claim"
        assert rows[0].block_height == 19_000_000

    @pytest.mark.asyncio
    async def test_duplicate_skips_fetch(self, verifier, eth, make_wallet):
        """A recorded tx is reported without another lookup."""
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = _found(Transfer(TX, PROJECT, WEI))

        first = await verifier.verify("eth", TX)
        second = await verifier.verify("eth", TX)

        assert first.outcome == ClaimOutcome.INSERTED
        assert second.outcome == ClaimOutcome.DUPLICATE
        assert second.state == ClaimState.DEDUPE
        assert eth.tx_calls == 1

    @pytest.mark.asyncio
    async def test_two_wallets_one_tx(self, verifier, eth, make_wallet, session_factory):
        """One row per destination wallet, repeated outputs summed."""
        make_wallet("eth", PROJECT)
        make_wallet("eth", SECOND)
        eth.transactions[TX] = _found(
            Transfer(TX, PROJECT, WEI),
            Transfer(TX, SECOND, 2 * WEI),
            Transfer(TX, PROJECT, WEI),
            Transfer(TX, STRANGER, 9 * WEI),
        )

        result = await verifier.verify("eth", TX)

        assert result.outcome == ClaimOutcome.INSERTED
        assert sorted(r.amount for r in _rows(session_factory)) == [Decimal("2"), Decimal("2")]
        assert len(result.rows) == 2

    @pytest.mark.asyncio
    async def test_store_error_on_dedupe(self, verifier, make_wallet):
        make_wallet("eth", PROJECT)
        with patch.object(ContributionRecorder, "exists_tx", side_effect=StoreError("store unreachable")):
            result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.STORE_ERROR
        assert result.code == "db_error"

    @pytest.mark.asyncio
    async def test_store_error_on_persist(self, verifier, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = _found(Transfer(TX, PROJECT, WEI))
        with patch.object(ContributionRecorder, "_insert", side_effect=StoreError("write failed")):
            result = await verifier.verify("eth", TX)
        assert result.outcome == ClaimOutcome.STORE_ERROR
        assert result.state == ClaimState.PERSIST

    @pytest.mark.asyncio
    async def test_concurrent_claims_insert_once(self, verifier, eth, make_wallet, session_factory):
        """Two claims racing past dedupe: one INSERTED, one DUPLICATE."""
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = _found(Transfer(TX, PROJECT, WEI))
        eth.tx_gate = asyncio.Event()

        tasks = [asyncio.create_task(verifier.verify("eth", TX)) for _ in range(2)]
        while eth.tx_calls < 2:
            await asyncio.sleep(0)
        eth.tx_gate.set()
        results = await asyncio.gather(*tasks)

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == ["duplicate", "inserted"]
        assert len(_rows(session_factory)) == 1
