"""
Tests for provider payload parsing.

============================================================
PURPOSE
============================================================
Each adapter maps its provider's JSON onto BlockData / TxLookup.
Network helpers (_rpc / _rest) are replaced with canned payloads.

============================================================
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import base58
import pytest

from chain_adapters.exceptions import (
    NormalizationError,
    RpcResponseError,
    TxLookupNotSupportedError,
)
from chain_adapters.models import Transfer, TxStatus
from chain_adapters.providers import (
    BlockfrostAdapter,
    CosmosLcdAdapter,
    EsploraAdapter,
    EvmRpcAdapter,
    PolkadotSidecarAdapter,
    SolanaAdapter,
    StellarHorizonAdapter,
    TronAdapter,
    UtxoRpcAdapter,
    XrpLedgerAdapter,
)
from chain_adapters.providers.trx import tron_hex_to_base58
from chain_adapters.router import RpcRouter
from core.chains import get_profile


def _adapter(cls, chain):
    return cls(get_profile(chain), RpcRouter(chain, ["http://127.0.0.1:9"]))


def _fake_rpc(adapter, responses):
    """Route _rpc(method, params) to responses[method] (value, exception or callable)."""

    async def rpc(method, params=None, passthrough_codes=()):
        value = responses[method]
        if callable(value):
            value = value(params)
        if isinstance(value, Exception):
            raise value
        return value

    adapter._rpc = AsyncMock(side_effect=rpc)
    return adapter._rpc


def _fake_rest(adapter, responses):
    """Route _rest(method, path) to responses[path]."""

    async def rest(http_method, path, params=None, json_body=None, not_found_ok=False, as_text=False):
        value = responses[path]
        if callable(value):
            value = value(params, json_body)
        return value

    adapter._rest = AsyncMock(side_effect=rest)
    return adapter._rest


EVM_TX = "0x" + "aa" * 32
EVM_TX_2 = "0x" + "bb" * 32
EVM_TO = "0x" + "12" * 20


# ============================================================
# EVM
# ============================================================

class TestEvmRpcAdapter:
    """Test eth-style JSON-RPC parsing."""

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(EvmRpcAdapter, "eth")
        _fake_rpc(adapter, {
            "eth_getBlockByNumber": {
                "timestamp": "0x65000000",
                "transactions": [
                    {"hash": EVM_TX.upper().replace("0X", "0x"), "to": EVM_TO.upper().replace("0X", "0x"), "value": hex(10 ** 18)},
                    {"hash": EVM_TX_2, "to": None, "value": "0x1"},
                    {"hash": "0x" + "cc" * 32, "to": EVM_TO, "value": "0x0"},
                ],
            },
        })

        block = await adapter.get_block(100)

        assert len(block.transfers) == 1
        transfer = block.transfers[0]
        assert transfer.tx_id == EVM_TX
        assert transfer.destination == EVM_TO
        assert transfer.native_amount == 10 ** 18
        assert block.timestamp.year == 2023

    @pytest.mark.asyncio
    async def test_missing_block(self):
        adapter = _adapter(EvmRpcAdapter, "eth")
        _fake_rpc(adapter, {"eth_getBlockByNumber": None})
        with pytest.raises(NormalizationError):
            await adapter.get_block(100)

    @pytest.mark.asyncio
    async def test_filter_successful_checks_receipts(self):
        """Reverted transactions are dropped; one receipt per tx."""
        adapter = _adapter(EvmRpcAdapter, "eth")
        _fake_rpc(adapter, {
            "eth_getTransactionReceipt": lambda params: {"status": "0x1" if params[0] == EVM_TX else "0x0"},
        })
        transfers = [
            Transfer(EVM_TX, EVM_TO, 1),
            Transfer(EVM_TX, "0x" + "34" * 20, 2),
            Transfer(EVM_TX_2, EVM_TO, 3),
        ]

        kept = await adapter.filter_successful(transfers)

        assert [t.native_amount for t in kept] == [1, 2]
        assert adapter._rpc.await_count == 2

    @pytest.mark.asyncio
    async def test_get_transaction_found(self):
        adapter = _adapter(EvmRpcAdapter, "eth")
        _fake_rpc(adapter, {
            "eth_getTransactionByHash": {"hash": EVM_TX, "to": EVM_TO, "value": "0x5", "blockNumber": "0x5a"},
            "eth_getTransactionReceipt": {"status": "0x1"},
            "eth_getBlockByNumber": {"timestamp": "0x65000000"},
            "eth_blockNumber": "0x64",
        })

        lookup = await adapter.get_transaction(EVM_TX)

        assert lookup.status == TxStatus.FOUND
        assert lookup.height == 90
        assert lookup.confirmations == 11
        assert lookup.transfers[0].native_amount == 5

    @pytest.mark.asyncio
    async def test_get_transaction_states(self):
        adapter = _adapter(EvmRpcAdapter, "eth")
        _fake_rpc(adapter, {"eth_getTransactionByHash": None})
        assert (await adapter.get_transaction(EVM_TX)).status == TxStatus.NOT_FOUND

        _fake_rpc(adapter, {"eth_getTransactionByHash": {"hash": EVM_TX, "blockNumber": None}})
        assert (await adapter.get_transaction(EVM_TX)).status == TxStatus.PENDING

        _fake_rpc(adapter, {
            "eth_getTransactionByHash": {"hash": EVM_TX, "to": EVM_TO, "value": "0x5", "blockNumber": "0x5a"},
            "eth_getTransactionReceipt": {"status": "0x0"},
            "eth_getBlockByNumber": {"timestamp": "0x65000000"},
            "eth_blockNumber": "0x64",
        })
        assert (await adapter.get_transaction(EVM_TX)).status == TxStatus.FAILED


# ============================================================
# UTXO
# ============================================================

BTC_TX = "ab" * 32


class TestUtxoRpcAdapter:
    """Test bitcoind JSON-RPC parsing."""

    @pytest.mark.asyncio
    async def test_get_transaction_found(self):
        adapter = _adapter(UtxoRpcAdapter, "btc")
        _fake_rpc(adapter, {
            "getrawtransaction": {
                "txid": BTC_TX,
                "confirmations": 3,
                "blockhash": "00" * 32,
                "blocktime": 1_700_000_000,
                "vout": [
                    {"value": Decimal("0.5"), "scriptPubKey": {"address": "bc1qproject"}},
                    {"value": Decimal("0.25"), "scriptPubKey": {"address": "bc1qproject"}},
                    {"value": Decimal("1"), "scriptPubKey": {"addresses": ["1A", "1B"]}},
                    {"value": Decimal("0"), "scriptPubKey": {"address": "bc1qdust"}},
                ],
            },
            "getblockheader": {"height": 800_000, "time": 1_700_000_000},
        })

        lookup = await adapter.get_transaction(BTC_TX)

        assert lookup.status == TxStatus.FOUND
        assert lookup.height == 800_000
        assert lookup.confirmations == 3
        assert [(t.destination, t.native_amount) for t in lookup.transfers] == [("bc1qproject", 75_000_000)]

    @pytest.mark.asyncio
    async def test_get_transaction_not_found(self):
        adapter = _adapter(UtxoRpcAdapter, "btc")
        _fake_rpc(adapter, {"getrawtransaction": RpcResponseError("No such transaction", rpc_code=-5)})
        assert (await adapter.get_transaction(BTC_TX)).status == TxStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_transaction_mempool(self):
        adapter = _adapter(UtxoRpcAdapter, "btc")
        _fake_rpc(adapter, {"getrawtransaction": {"txid": BTC_TX, "vout": []}})
        assert (await adapter.get_transaction(BTC_TX)).status == TxStatus.PENDING

    @pytest.mark.asyncio
    async def test_txid_only_block_rejected(self):
        adapter = _adapter(UtxoRpcAdapter, "btc")
        _fake_rpc(adapter, {"getblockhash": "00" * 32, "getblock": {"tx": [BTC_TX]}})
        with pytest.raises(NormalizationError):
            await adapter.get_block(1)

    @pytest.mark.asyncio
    async def test_excess_precision_rejected(self):
        adapter = _adapter(UtxoRpcAdapter, "btc")
        _fake_rpc(adapter, {
            "getblockhash": "00" * 32,
            "getblock": {"tx": [{"txid": BTC_TX, "vout": [
                {"value": Decimal("0.000000001"), "scriptPubKey": {"address": "bc1q"}},
            ]}]},
        })
        with pytest.raises(NormalizationError):
            await adapter.get_block(1)


# ============================================================
# ESPLORA
# ============================================================

class TestEsploraAdapter:
    """Test Blockstream-style REST parsing."""

    @pytest.mark.asyncio
    async def test_get_block_pages(self):
        adapter = _adapter(EsploraAdapter, "btc")
        block_hash = "00" * 32
        page = [{"txid": BTC_TX.upper(), "vout": [{"scriptpubkey_address": "bc1qproject", "value": 1000}]}]
        rest = _fake_rest(adapter, {
            "/block-height/5": block_hash,
            f"/block/{block_hash}": {"tx_count": 30, "timestamp": 1_700_000_000},
            f"/block/{block_hash}/txs/0": page,
            f"/block/{block_hash}/txs/25": [],
        })

        block = await adapter.get_block(5)

        assert rest.await_count == 4
        assert block.transfers[0].tx_id == BTC_TX
        assert block.transfers[0].native_amount == 1000

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        adapter = _adapter(EsploraAdapter, "btc")
        _fake_rest(adapter, {f"/tx/{BTC_TX}": None})
        assert (await adapter.get_transaction(BTC_TX)).status == TxStatus.NOT_FOUND

        _fake_rest(adapter, {
            f"/tx/{BTC_TX}": {
                "txid": BTC_TX,
                "status": {"confirmed": True, "block_height": 95, "block_time": 1_700_000_000},
                "vout": [{"scriptpubkey_address": "bc1qproject", "value": 5000}],
            },
            "/blocks/tip/height": "100",
        })
        lookup = await adapter.get_transaction(BTC_TX)
        assert lookup.status == TxStatus.FOUND
        assert lookup.confirmations == 6


ADA_TX = "9f" * 32
ADA_TX_2 = "8e" * 32
ADA_PROJECT = "addr1qxproject"


def _ada_utxos(*outputs):
    return {"hash": ADA_TX, "inputs": [], "outputs": list(outputs)}


class TestBlockfrostAdapter:
    """Test Cardano lovelace output parsing."""

    @pytest.mark.asyncio
    async def test_get_tip(self):
        adapter = _adapter(BlockfrostAdapter, "cardano")
        _fake_rest(adapter, {"/blocks/latest": {"height": 10_500_000, "time": 1_700_000_000}})
        assert await adapter.get_tip() == 10_500_000

    @pytest.mark.asyncio
    async def test_get_block_sums_lovelace(self):
        adapter = _adapter(BlockfrostAdapter, "ada")
        adapter.PAGE_SIZE = 1
        pages = {1: [ADA_TX.upper()], 2: [ADA_TX_2]}
        rest = _fake_rest(adapter, {
            "/blocks/700": {"height": 700, "time": 1_700_000_000, "tx_count": 2},
            "/blocks/700/txs": lambda params, body: pages[params["page"]],
            f"/txs/{ADA_TX.upper()}/utxos": _ada_utxos(
                {"address": ADA_PROJECT, "amount": [
                    {"unit": "lovelace", "quantity": "2500000"},
                    {"unit": "f0ff48bbb7bbe9d59a40f1ce90e9e9d0ff5002ec48f232b49ca0fb9a", "quantity": "7"},
                ]},
                {"address": ADA_PROJECT, "amount": [{"unit": "lovelace", "quantity": "1000000"}]},
                {"address": "addr1qxsender", "amount": [{"unit": "lovelace", "quantity": "90000000"}]},
            ),
            f"/txs/{ADA_TX_2}/utxos": _ada_utxos(
                {"address": ADA_PROJECT, "collateral": True, "amount": [{"unit": "lovelace", "quantity": "5000000"}]},
            ),
        })

        block = await adapter.get_block(700)

        assert [(t.tx_id, t.destination, t.native_amount) for t in block.transfers] == [
            (ADA_TX, ADA_PROJECT, 3_500_000),
            (ADA_TX, "addr1qxsender", 90_000_000),
        ]
        assert block.timestamp.year == 2023
        assert rest.await_count == 5

    @pytest.mark.asyncio
    async def test_bad_quantity(self):
        adapter = _adapter(BlockfrostAdapter, "ada")
        _fake_rest(adapter, {
            "/blocks/700": {"time": 1_700_000_000, "tx_count": 1},
            "/blocks/700/txs": [ADA_TX],
            f"/txs/{ADA_TX}/utxos": _ada_utxos(
                {"address": ADA_PROJECT, "amount": [{"unit": "lovelace", "quantity": "1.5"}]},
            ),
        })
        with pytest.raises(NormalizationError):
            await adapter.get_block(700)

    @pytest.mark.asyncio
    async def test_filter_successful_drops_failed_scripts(self):
        adapter = _adapter(BlockfrostAdapter, "ada")
        rest = _fake_rest(adapter, {
            f"/txs/{ADA_TX}": {"hash": ADA_TX, "valid_contract": True},
            f"/txs/{ADA_TX_2}": {"hash": ADA_TX_2, "valid_contract": False},
        })
        transfers = [
            Transfer(tx_id=ADA_TX, destination=ADA_PROJECT, native_amount=1),
            Transfer(tx_id=ADA_TX, destination="addr1qxother", native_amount=2),
            Transfer(tx_id=ADA_TX_2, destination=ADA_PROJECT, native_amount=3),
        ]

        kept = await adapter.filter_successful(transfers)

        assert [t.native_amount for t in kept] == [1, 2]
        assert rest.await_count == 2

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        adapter = _adapter(BlockfrostAdapter, "ada")
        _fake_rest(adapter, {f"/txs/{ADA_TX}": None})
        assert (await adapter.get_transaction(ADA_TX)).status == TxStatus.NOT_FOUND

        _fake_rest(adapter, {
            f"/txs/{ADA_TX}": {"hash": ADA_TX, "block_height": 691, "block_time": 1_700_000_000, "valid_contract": True},
            f"/txs/{ADA_TX}/utxos": _ada_utxos(
                {"address": ADA_PROJECT, "amount": [{"unit": "lovelace", "quantity": "12000000"}]},
            ),
            "/blocks/latest": {"height": 700},
        })
        lookup = await adapter.get_transaction(ADA_TX)
        assert lookup.status == TxStatus.FOUND
        assert lookup.confirmations == 10
        assert lookup.transfers[0].native_amount == 12_000_000

        _fake_rest(adapter, {
            f"/txs/{ADA_TX}": {"hash": ADA_TX, "block_height": 691, "valid_contract": False},
            f"/txs/{ADA_TX}/utxos": _ada_utxos(),
            "/blocks/latest": {"height": 700},
        })
        assert (await adapter.get_transaction(ADA_TX)).status == TxStatus.FAILED


# ============================================================
# ACCOUNT CHAINS
# ============================================================

XRP_TX = "cd" * 32


class TestXrpLedgerAdapter:
    """Test rippled ledger and tx parsing."""

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(XrpLedgerAdapter, "xrp")
        _fake_rpc(adapter, {"ledger": {"ledger": {"close_time": 750_000_000, "transactions": [
            {
                "hash": XRP_TX,
                "TransactionType": "Payment",
                "Destination": "rProject",
                "Amount": "9000000",
                "metaData": {"TransactionResult": "tesSUCCESS", "delivered_amount": "1000000"},
            },
            {
                "hash": "ef" * 32,
                "TransactionType": "Payment",
                "Destination": "rProject",
                "Amount": {"currency": "USD", "value": "10", "issuer": "rIssuer"},
                "metaData": {"TransactionResult": "tesSUCCESS"},
            },
            {"hash": "12" * 32, "TransactionType": "OfferCreate"},
        ]}}})

        block = await adapter.get_block(90_000_000)

        assert len(block.transfers) == 1
        transfer = block.transfers[0]
        assert transfer.tx_id == XRP_TX.upper()
        assert transfer.native_amount == 1_000_000
        assert transfer.success
        assert block.timestamp.year == 2023

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        adapter = _adapter(XrpLedgerAdapter, "xrp")
        _fake_rpc(adapter, {"tx": {"error": "txnNotFound"}})
        assert (await adapter.get_transaction(XRP_TX)).status == TxStatus.NOT_FOUND

        _fake_rpc(adapter, {"tx": {
            "hash": XRP_TX, "TransactionType": "Payment", "Destination": "rProject",
            "Amount": "5", "validated": True, "ledger_index": 100,
            "meta": {"TransactionResult": "tecUNFUNDED_PAYMENT"},
        }})
        assert (await adapter.get_transaction(XRP_TX)).status == TxStatus.FAILED


class TestStellarHorizonAdapter:
    """Test Horizon payment parsing."""

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(StellarHorizonAdapter, "xlm")
        _fake_rest(adapter, {
            "/ledgers/500": {"closed_at": "2024-03-01T12:00:00Z"},
            "/ledgers/500/payments": {"_embedded": {"records": [
                {"type": "payment", "asset_type": "native", "to": "GPROJECT", "amount": "12.5000000",
                 "transaction_hash": "AB" * 32, "transaction_successful": True},
                {"type": "create_account", "account": "GNEW", "starting_balance": "1.0000000",
                 "transaction_hash": "cd" * 32},
                {"type": "payment", "asset_type": "credit_alphanum4", "to": "GPROJECT", "amount": "5"},
            ]}},
        })

        block = await adapter.get_block(500)

        assert [(t.destination, t.native_amount) for t in block.transfers] == [
            ("GPROJECT", 125_000_000),
            ("GNEW", 10_000_000),
        ]
        assert block.transfers[0].tx_id == "ab" * 32
        assert block.timestamp.hour == 12

    @pytest.mark.asyncio
    async def test_payment_pages_past_limit_raise(self):
        """A ledger that cannot be read completely is an error, not a partial block."""
        adapter = _adapter(StellarHorizonAdapter, "xlm")
        adapter.PAGE_LIMIT = 2
        adapter.MAX_PAGES = 3
        full_page = {"_embedded": {"records": [
            {"type": "payment", "asset_type": "native", "to": "GPROJECT", "amount": "1.0000000",
             "transaction_hash": "ab" * 32, "paging_token": "1"},
            {"type": "payment", "asset_type": "native", "to": "GPROJECT", "amount": "2.0000000",
             "transaction_hash": "cd" * 32, "paging_token": "2"},
        ]}}
        rest = _fake_rest(adapter, {
            "/ledgers/500": {"closed_at": "2024-03-01T12:00:00Z"},
            "/ledgers/500/payments": full_page,
        })

        with pytest.raises(NormalizationError):
            await adapter.get_block(500)
        assert rest.await_count == 4


class TestSolanaAdapter:
    """Test Solana balance-delta parsing."""

    SIG = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(SolanaAdapter, "sol")
        _fake_rpc(adapter, {"getBlock": {"blockTime": 1_700_000_000, "transactions": [{
            "transaction": {"signatures": [self.SIG], "message": {"accountKeys": [
                {"pubkey": "Sender111"}, {"pubkey": "Project111"}, {"pubkey": "11111111111111111111111111111111"},
            ]}},
            "meta": {"err": None, "preBalances": [5_000_000_000, 0, 1], "postBalances": [3_999_995_000, 1_000_000_000, 1]},
        }]}})

        block = await adapter.get_block(250_000_000)

        assert [(t.tx_id, t.destination, t.native_amount) for t in block.transfers] == [
            (self.SIG, "Project111", 1_000_000_000),
        ]

    @pytest.mark.asyncio
    async def test_skipped_slot(self):
        adapter = _adapter(SolanaAdapter, "sol")
        _fake_rpc(adapter, {"getBlock": RpcResponseError("Slot skipped", rpc_code=-32007)})
        block = await adapter.get_block(1)
        assert block.transfers == []

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        adapter = _adapter(SolanaAdapter, "sol")
        _fake_rpc(adapter, {
            "getTransaction": None,
            "getSignatureStatuses": {"value": [None]},
        })
        assert (await adapter.get_transaction(self.SIG)).status == TxStatus.NOT_FOUND

        _fake_rpc(adapter, {
            "getTransaction": None,
            "getSignatureStatuses": {"value": [{"slot": 10, "confirmationStatus": "confirmed"}]},
        })
        assert (await adapter.get_transaction(self.SIG)).status == TxStatus.PENDING

        _fake_rpc(adapter, {"getTransaction": {
            "slot": 9, "blockTime": 1_700_000_000,
            "transaction": {"signatures": [self.SIG], "message": {"accountKeys": ["A", "B"]}},
            "meta": {"err": {"InstructionError": [0, "Custom"]}, "preBalances": [10, 0], "postBalances": [5, 5]},
        }})
        lookup = await adapter.get_transaction(self.SIG)
        assert lookup.status == TxStatus.FAILED
        assert lookup.transfers[0].success is False


class TestTronAdapter:
    """Test TransferContract parsing."""

    TO_HEX = "41" + "a6" * 20

    def test_hex_to_base58(self):
        encoded = tron_hex_to_base58(self.TO_HEX)
        assert encoded.startswith("T")
        assert encoded == base58.b58encode_check(bytes.fromhex(self.TO_HEX)).decode()

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(TronAdapter, "trx")
        _fake_rest(adapter, {"/wallet/getblockbynum": {
            "block_header": {"raw_data": {"number": 60_000_000, "timestamp": 1_700_000_000_000}},
            "transactions": [
                {
                    "txID": "AB" * 32,
                    "ret": [{"contractRet": "SUCCESS"}],
                    "raw_data": {"contract": [{"type": "TransferContract", "parameter": {
                        "value": {"to_address": self.TO_HEX, "amount": 2_000_000},
                    }}]},
                },
                {"txID": "cd" * 32, "raw_data": {"contract": [{"type": "TriggerSmartContract"}]}},
            ],
        }})

        block = await adapter.get_block(60_000_000)

        assert len(block.transfers) == 1
        assert block.transfers[0].tx_id == "ab" * 32
        assert block.transfers[0].destination == tron_hex_to_base58(self.TO_HEX)
        assert block.transfers[0].native_amount == 2_000_000

    @pytest.mark.asyncio
    async def test_empty_block_is_malformed(self):
        adapter = _adapter(TronAdapter, "trx")
        _fake_rest(adapter, {"/wallet/getblockbynum": {}})
        with pytest.raises(NormalizationError):
            await adapter.get_block(1)


class TestCosmosLcdAdapter:
    """Test bank message parsing."""

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(CosmosLcdAdapter, "atom")
        _fake_rest(adapter, {"/cosmos/tx/v1beta1/txs": {
            "pagination": {"total": "2"},
            "tx_responses": [
                {
                    "txhash": "ab" * 32, "code": 0, "timestamp": "2024-03-01T12:00:00.123456789Z",
                    "tx": {"body": {"messages": [{
                        "@type": "/cosmos.bank.v1beta1.MsgSend",
                        "to_address": "cosmos1project",
                        "amount": [{"denom": "uatom", "amount": "1500000"}, {"denom": "ibc/XYZ", "amount": "9"}],
                    }]}},
                },
                {
                    "txhash": "cd" * 32, "code": 5,
                    "tx": {"body": {"messages": [{
                        "@type": "/cosmos.bank.v1beta1.MsgMultiSend",
                        "outputs": [{"address": "cosmos1project", "coins": [{"denom": "uatom", "amount": "7"}]}],
                    }]}},
                },
            ],
        }})

        block = await adapter.get_block(20_000_000)

        assert [(t.tx_id, t.native_amount, t.success) for t in block.transfers] == [
            ("AB" * 32, 1_500_000, True),
            ("CD" * 32, 7, False),
        ]
        assert block.timestamp.microsecond == 123456


class TestPolkadotSidecarAdapter:
    """Test balances.Transfer event parsing."""

    @pytest.mark.asyncio
    async def test_get_block(self):
        adapter = _adapter(PolkadotSidecarAdapter, "dot")
        _fake_rest(adapter, {"/blocks/42": {"extrinsics": [
            {"method": {"pallet": "timestamp", "method": "set"}, "args": {"now": "1700000000000"}},
            {
                "hash": "0x" + "AB" * 32,
                "success": True,
                "method": {"pallet": "balances", "method": "transferKeepAlive"},
                "events": [
                    {"method": {"pallet": "balances", "method": "Transfer"},
                     "data": ["1Sender", {"id": "1Project"}, "25000000000"]},
                    {"method": {"pallet": "system", "method": "ExtrinsicSuccess"}, "data": []},
                ],
            },
        ]}})

        block = await adapter.get_block(42)

        assert [(t.tx_id, t.destination, t.native_amount) for t in block.transfers] == [
            ("0x" + "ab" * 32, "1Project", 25_000_000_000),
        ]
        assert block.timestamp is not None

    @pytest.mark.asyncio
    async def test_no_tx_lookup(self):
        adapter = _adapter(PolkadotSidecarAdapter, "dot")
        assert adapter.SUPPORTS_TX_LOOKUP is False
        with pytest.raises(TxLookupNotSupportedError):
            await adapter.get_transaction("0x" + "ab" * 32)


class TestEvmHealthCheck:
    """Test the chain id check."""

    @pytest.mark.asyncio
    async def test_wrong_network_reported(self):
        adapter = _adapter(EvmRpcAdapter, "bsc")
        _fake_rpc(adapter, {"eth_blockNumber": "0x10", "eth_chainId": "0x1"})

        health = await adapter.health_check()

        assert health.tip_height == 16
        assert "expected 56" in health.last_error

    @pytest.mark.asyncio
    async def test_matching_network(self):
        adapter = _adapter(EvmRpcAdapter, "eth")
        _fake_rpc(adapter, {"eth_blockNumber": "0x10", "eth_chainId": "0x1"})
        assert await adapter.get_chain_id() == 1
        assert (await adapter.health_check()).last_error is None
