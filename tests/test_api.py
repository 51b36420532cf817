"""HTTP surface tests for the adapter API using an in-memory ledger source."""

from __future__ import annotations

from fastapi.testclient import TestClient

from packages.xrpl_dex.cache import RateLimiter, TTLCache
from packages.xrpl_dex.errors import RpcError
from packages.xrpl_dex.rpc import LedgerHead
from services.api.main import create_app
from tests._fakes import FakeLedgerSource, offer_create, payment, usd


def _client(source: FakeLedgerSource, **kwargs) -> TestClient:
    kwargs.setdefault("cache", TTLCache(ttl_seconds=600))
    kwargs.setdefault("limiter", RateLimiter(max_requests=1000, window_seconds=900))
    return TestClient(create_app(source=source, **kwargs))


def _source() -> FakeLedgerSource:
    source = FakeLedgerSource(
        head=LedgerHead(index=88, close_time=700_000_000),
        accounts={"rISSUER": {"Account": "rISSUER"}},
        obligations={"rISSUER": {"USD": "250"}},
        offers={("XRP", "USD"): {"BookDirectory": "BOOKDIR", "date": 1}},
    )
    source.add_ledger(
        5,
        [
            offer_create("T1", "1000000", usd("2")),
            payment("T2", "1000000"),
            offer_create("T3", "0", usd("1")),
        ],
        close_time=100,
    )
    source.add_ledger(6, [payment("T4", usd("1"), deliver_min="4000000")], close_time=104)
    return source


def test_health():
    resp = _client(_source()).get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_latest_block_is_cached():
    source = _source()
    client = _client(source)

    first = client.get("/latest-block")
    second = client.get("/latest-block")

    assert first.status_code == 200
    assert first.json() == {"block": {"blockNumber": 88, "blockTimestamp": 700_000_000 + 946_684_800}}
    assert second.json() == first.json()
    assert source.calls.count(("head",)) == 1


def test_events_range():
    resp = _client(_source()).get("/events", params={"fromBlock": 5, "toBlock": 6})
    assert resp.status_code == 200
    data = resp.json()

    assert [e["txnId"] for e in data["events"]] == ["T1", "T4"]
    assert data["skippedTransactions"] == 1
    first = data["events"][0]
    assert first["pairId"] == "XRP_USD.rISSUER"
    assert first["asset0In"] == "1"
    assert first["asset1Out"] == "2"
    assert first["priceNative"] == "2"
    assert first["reserves"] == {"asset0": "0", "asset1": "0"}
    assert data["events"][1]["priceNative"] == "4"


def test_events_requires_both_bounds():
    resp = _client(_source()).get("/events", params={"fromBlock": 5})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Both fromBlock and toBlock are required"


def test_events_rejects_inverted_and_oversized_ranges():
    client = _client(_source(), max_range=2)
    assert client.get("/events", params={"fromBlock": 6, "toBlock": 5}).status_code == 400
    assert client.get("/events", params={"fromBlock": 1, "toBlock": 5}).status_code == 400


def test_events_fetch_failure_returns_no_partial_events():
    resp = _client(_source()).get("/events", params={"fromBlock": 5, "toBlock": 7})
    assert resp.status_code == 502
    body = resp.json()
    assert "events" not in body
    assert "ledger 7" in body["detail"]


def test_asset_batch_with_partial_errors():
    resp = _client(_source()).get("/asset", params={"id": "XRP,USD.rISSUER,BAD"})
    assert resp.status_code == 200
    assets = resp.json()["assets"]

    assert assets[0]["totalSupply"] == "100000000000"
    assert assets[1]["totalSupply"] == "250"
    assert assets[1]["metadata"] == {"issuer": "rISSUER"}
    assert assets[2] == {"id": "BAD", "error": "Invalid asset ID format"}


def test_asset_accepts_repeated_ids():
    resp = _client(_source()).get("/asset?id=XRP&id=USD.rISSUER")
    assert [a["id"] for a in resp.json()["assets"]] == ["XRP", "USD.rISSUER"]


def test_asset_requires_id():
    resp = _client(_source()).get("/asset")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Asset ID is required"


def test_pair_found_and_cached():
    source = _source()
    client = _client(source)

    resp = client.get("/pair", params={"id": "XRP_USD.rISSUER"})
    assert resp.status_code == 200
    pair = resp.json()["pair"]
    assert pair["feeBps"] == 10
    assert pair["dexKey"] == "xrpl"
    assert pair["createdAtBlockNumber"] == "BOOKDIR"

    client.get("/pair", params={"id": "XRP_USD.rISSUER"})
    assert sum(1 for call in source.calls if call[0] == "book_offers") == 1


def test_pair_not_found_is_404():
    resp = _client(_source()).get("/pair", params={"id": "XRP_EUR.rISSUER"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Pair not found"


def test_pair_malformed_is_400():
    resp = _client(_source()).get("/pair", params={"id": "XRPUSD"})
    assert resp.status_code == 400


def test_rate_limit_returns_429():
    client = _client(_source(), limiter=RateLimiter(max_requests=2, window_seconds=900))
    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 200
    resp = client.get("/health")
    assert resp.status_code == 429
    assert "Too many requests" in resp.json()["detail"]


class _FailingNodeSource(FakeLedgerSource):
    def fetch_validated_ledger_head(self) -> LedgerHead:
        self.calls.append(("head",))
        raise RpcError("Ledger node unreachable during ledger: connection refused")

    def fetch_best_offer(self, taker_gets: dict, taker_pays: dict):
        self.calls.append(("book_offers", taker_gets, taker_pays))
        raise RpcError("Ledger node unreachable during book_offers: connection refused")


def test_events_non_integer_bounds_are_400():
    resp = _client(_source()).get("/events", params={"fromBlock": "abc", "toBlock": 5})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid value for fromBlock"


def test_latest_block_node_failure_is_502_and_not_cached():
    source = _FailingNodeSource()
    client = _client(source)

    resp = client.get("/latest-block")
    assert resp.status_code == 502
    assert "unreachable" in resp.json()["detail"]

    client.get("/latest-block")
    assert source.calls.count(("head",)) == 2


def test_pair_node_failure_is_502():
    resp = _client(_FailingNodeSource()).get("/pair", params={"id": "XRP_USD.rISSUER"})
    assert resp.status_code == 502
    assert "unreachable" in resp.json()["detail"]
