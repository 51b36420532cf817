"""XRP Ledger DEX adapter package."""

from .http_client import HttpClient
from .amounts import AssetAmount, normalize_amount, format_decimal, parse_asset_id
from .rpc import LedgerRpcClient, LedgerSource, LedgerSnapshot, LedgerHead
from .events import SwapEvent, TradeLegs, classify_transaction, build_pair_id, compute_price
from .scanner import ScanResult, scan_ledger_range, fetch_latest_block
from .assets import AssetInfo, resolve_asset, resolve_assets
from .pairs import PairInfo, resolve_pair
from .cache import TTLCache, RateLimiter

__all__ = [
    "HttpClient",
    "AssetAmount",
    "normalize_amount",
    "format_decimal",
    "parse_asset_id",
    "LedgerRpcClient",
    "LedgerSource",
    "LedgerSnapshot",
    "LedgerHead",
    "SwapEvent",
    "TradeLegs",
    "classify_transaction",
    "build_pair_id",
    "compute_price",
    "ScanResult",
    "scan_ledger_range",
    "fetch_latest_block",
    "AssetInfo",
    "resolve_asset",
    "resolve_assets",
    "PairInfo",
    "resolve_pair",
    "TTLCache",
    "RateLimiter",
]
