"""Error taxonomy for the XRPL DEX adapter.

Every error carries a stable ``code`` and a human-readable message so the
service layer can report it without inspecting the exception type further.
"""

from __future__ import annotations


class AdapterError(Exception):
    """Base class for all adapter failures."""

    code = "adapter_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "error": self.message}


class MalformedAmount(AdapterError):
    """Raised when an amount is neither native drops nor an issued-currency object."""

    code = "malformed_amount"


class DivisionByZero(AdapterError):
    """Raised when a price is requested against a zero input leg."""

    code = "division_by_zero"


class MalformedTransaction(AdapterError):
    """Raised when a trade-shaped transaction lacks its hash or account."""

    code = "malformed_transaction"


class MalformedIdentifier(AdapterError):
    """Raised for asset or pair identifiers that do not parse."""

    code = "malformed_identifier"


class InvalidRange(AdapterError):
    """Raised when a ledger range is negative, inverted or too wide."""

    code = "invalid_range"


class RpcError(AdapterError):
    """Raised when the ledger node returns an error or cannot be reached."""

    code = "rpc_error"

    def __init__(self, message: str, rpc_code: str | None = None):
        super().__init__(message)
        self.rpc_code = rpc_code


class LedgerFetchError(AdapterError):
    """Raised when a ledger in a requested range cannot be fetched."""

    code = "ledger_fetch_error"

    def __init__(self, ledger_index: int, reason: str):
        super().__init__(f"Failed to fetch ledger {ledger_index}: {reason}")
        self.ledger_index = ledger_index


class AssetNotResolvable(AdapterError):
    """Raised when a single asset cannot be described."""

    code = "asset_not_resolvable"

    def __init__(self, asset_id: str, message: str):
        super().__init__(message)
        self.asset_id = asset_id


class PairNotFound(AdapterError):
    """Raised when the order book for a pair holds no offers."""

    code = "pair_not_found"

    def __init__(self, pair_id: str):
        super().__init__("Pair not found")
        self.pair_id = pair_id
