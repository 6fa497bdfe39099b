"""
Tests for the FastAPI endpoints.

The service dependency is overridden with one wired to fake
adapters and an in-memory store.
"""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.router import get_service
from chain_adapters.models import Transfer, TxLookup, TxStatus
from ingestion.service import IngestionService


PROJECT = "0x" + "ab" * 20
TX = "0x" + "34" * 32


@pytest.fixture
def eth(fake_adapter):
    return fake_adapter("eth", tip=1_000)


@pytest.fixture
def client(session_factory, registry_with, eth):
    service = IngestionService(registry_with(eth), session_factory)
    app = create_app()
    app.dependency_overrides[get_service] = lambda: service
    return TestClient(app)


# ============================================================
# CLAIMS
# ============================================================

class TestClaimEndpoint:
    """Test POST /claim."""

    def test_inserted_then_duplicate(self, client, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.transactions[TX] = TxLookup(
            tx_id=TX,
            status=TxStatus.FOUND,
            transfers=[Transfer(TX, PROJECT, 10 ** 17)],
            height=900,
            confirmations=101,
        )

        first = client.post("/claim", json={"chain": "ethereum", "tx": TX, "note": "gm"})
        second = client.post("/claim", json={"chain": "eth", "tx": TX})

        assert first.status_code == 200
        body = first.json()
        assert body["ok"] is True
        assert body["code"] == "inserted"
        assert body["message"] == "The transaction was successfully recorded on our project."
        assert body["rows"][0]["amount"] == "0.1"

        assert second.status_code == 200
        assert second.json()["code"] == "duplicate"

    def test_invalid_payload(self, client):
        response = client.post("/claim", json={"chain": "eth", "tx": "0xnope"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_payload"
        assert response.json()["reason"] == "expect_0x64_hex"

    def test_not_found(self, client):
        response = client.post("/claim", json={"chain": "eth", "tx": TX})
        assert response.status_code == 404
        assert response.json()["code"] == "tx_not_found"

    def test_pending(self, client, eth):
        eth.transactions[TX] = TxLookup.pending(TX)
        response = client.post("/claim", json={"chain": "eth", "tx": TX})
        assert response.status_code == 409
        assert response.json()["code"] == "tx_pending"

    def test_missing_field(self, client):
        response = client.post("/claim", json={"chain": "eth"})
        assert response.status_code == 422


# ============================================================
# INGESTION / DIAGNOSTICS
# ============================================================

class TestIngestEndpoint:
    """Test POST /ingest/{chain} and diagnostics."""

    def test_scan(self, client, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.add_transfer(985, TX, PROJECT, 10 ** 18)

        response = client.post("/ingest/eth", params={"since_height": 980})

        assert response.status_code == 200
        body = response.json()
        assert body["start"] == 980
        assert body["end"] == 988
        assert body["inserted"] == 1

        cursors = client.get("/cursors").json()
        assert cursors[0]["chain"] == "eth"
        assert cursors[0]["last_scanned_height"] == 988

    def test_provider_failure(self, client, eth, make_wallet):
        make_wallet("eth", PROJECT)
        eth.fail_at = 0
        response = client.post("/ingest/eth")
        assert response.status_code == 502
        assert response.json()["error"] == "rpc_unavailable"

    def test_unknown_chain(self, client):
        assert client.post("/ingest/fantom").status_code == 400

    def test_unconfigured_chain(self, client):
        assert client.post("/ingest/btc").status_code == 400

    def test_bad_query(self, client):
        assert client.post("/ingest/eth", params={"max_blocks": 0}).status_code == 422

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert "eth" in body["adapters"]

    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"
