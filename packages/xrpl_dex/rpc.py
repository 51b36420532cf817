"""Ledger node access over the rippled JSON-RPC interface.

The rest of the package depends only on the :class:`LedgerSource` protocol;
:class:`LedgerRpcClient` is the concrete implementation that talks to a node
through one pooled :class:`HttpClient`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

import requests

from .errors import RpcError
from .http_client import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://s1.ripple.com:51234"

# Seconds between the Unix epoch and the ledger epoch (2000-01-01T00:00:00Z).
RIPPLE_EPOCH_OFFSET = 946_684_800


def ripple_to_unix(close_time: int) -> int:
    """Convert a ledger-epoch timestamp to Unix epoch seconds."""
    return int(close_time) + RIPPLE_EPOCH_OFFSET


@dataclass(frozen=True)
class LedgerHead:
    """Index and close time of the latest validated ledger."""

    index: int
    close_time: int

    @property
    def close_time_unix(self) -> int:
        return ripple_to_unix(self.close_time)


@dataclass(frozen=True)
class LedgerSnapshot:
    """One fetched ledger with its expanded transactions in ledger order."""

    index: int
    close_time: int
    transactions: tuple

    @property
    def close_time_unix(self) -> int:
        return ripple_to_unix(self.close_time)


class LedgerSource(Protocol):
    """Protocol for ledger data collaborators."""

    def fetch_validated_ledger_head(self) -> LedgerHead:
        """Return the latest validated ledger index and close time."""
        ...

    def fetch_ledger(self, index: int) -> LedgerSnapshot:
        """Return a ledger with its transactions expanded."""
        ...

    def fetch_account_info(self, account: str) -> dict:
        """Return the account root object (``Domain`` is optional hex)."""
        ...

    def fetch_obligations(self, account: str) -> dict[str, str]:
        """Return outstanding issued balances keyed by currency."""
        ...

    def fetch_best_offer(self, taker_gets: dict, taker_pays: dict) -> Optional[dict]:
        """Return the best offer in the book or None when it is empty."""
        ...


def _flatten_transaction(entry: dict) -> dict:
    """Return a transaction in the flat shape regardless of API version.

    API v2 nests the fields under ``tx_json`` with ``hash`` and ``meta``
    alongside; API v1 returns them flat with ``metaData``.
    """
    tx_json = entry.get("tx_json")
    if not isinstance(tx_json, dict):
        return entry
    flat = dict(tx_json)
    if "hash" in entry:
        flat.setdefault("hash", entry["hash"])
    if "meta" in entry:
        flat.setdefault("meta", entry["meta"])
    return flat


class LedgerRpcClient:
    """JSON-RPC client for a single rippled node."""

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        timeout: float = 20.0,
        max_retries: int = 3,
    ):
        self.rpc_url = rpc_url
        self.client = HttpClient(base_url=rpc_url, timeout=timeout, max_retries=max_retries)

    def request(self, method: str, **params: Any) -> dict:
        """Call one RPC method and return its ``result`` object.

        Raises:
            RpcError: If the node is unreachable, answers with garbage, or
                reports an error status
        """
        payload = {"method": method, "params": [params]}
        try:
            body = self.client.post_json(payload)
        except requests.exceptions.RequestException as exc:
            logger.warning(f"RPC transport failure calling {method}: {exc}")
            raise RpcError(f"Ledger node unreachable during {method}: {exc}") from exc
        except ValueError as exc:
            raise RpcError(f"Ledger node returned invalid JSON for {method}") from exc

        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            raise RpcError(f"Ledger node returned no result for {method}")

        if result.get("status") == "error":
            rpc_code = result.get("error") or "unknown"
            message = result.get("error_message") or rpc_code
            logger.debug(f"RPC {method} failed with {rpc_code}: {message}")
            raise RpcError(f"{method} failed: {message}", rpc_code=rpc_code)

        return result

    def fetch_validated_ledger_head(self) -> LedgerHead:
        result = self.request("ledger", ledger_index="validated")
        ledger = result.get("ledger") or {}
        try:
            return LedgerHead(
                index=int(result.get("ledger_index", ledger.get("ledger_index"))),
                close_time=int(ledger["close_time"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError("Validated ledger response is missing index or close time") from exc

    def fetch_ledger(self, index: Union[int, str]) -> LedgerSnapshot:
        result = self.request("ledger", ledger_index=index, transactions=True, expand=True)
        ledger = result.get("ledger")
        if not isinstance(ledger, dict) or "close_time" not in ledger:
            raise RpcError(f"Ledger {index} response has no ledger header")

        transactions = ledger.get("transactions") or []
        # Positions in this list are the txnIndex of every event, so nothing may be dropped.
        if not all(isinstance(entry, dict) for entry in transactions):
            raise RpcError(f"Ledger {index} returned transactions that are not expanded")

        try:
            return LedgerSnapshot(
                index=int(ledger.get("ledger_index", index)),
                close_time=int(ledger["close_time"]),
                transactions=tuple(_flatten_transaction(entry) for entry in transactions),
            )
        except (TypeError, ValueError) as exc:
            raise RpcError(f"Ledger {index} response has an unreadable index or close time") from exc

    def fetch_account_info(self, account: str) -> dict:
        result = self.request("account_info", account=account, ledger_index="validated")
        return result.get("account_data") or {}

    def fetch_obligations(self, account: str) -> dict[str, str]:
        result = self.request(
            "gateway_balances",
            account=account,
            strict=True,
            hotwallet=[],
            ledger_index="validated",
        )
        obligations = result.get("obligations") or {}
        return {str(k): str(v) for k, v in obligations.items()}

    def fetch_best_offer(self, taker_gets: dict, taker_pays: dict) -> Optional[dict]:
        result = self.request(
            "book_offers",
            taker_gets=taker_gets,
            taker_pays=taker_pays,
            limit=1,
        )
        offers = result.get("offers") or []
        return offers[0] if offers else None

    def close(self) -> None:
        self.client.close()
