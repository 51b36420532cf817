"""Asset metadata resolution for XRP and issued currencies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .amounts import NATIVE_CURRENCY, parse_asset_id
from .errors import AdapterError, AssetNotResolvable
from .rpc import LedgerSource

logger = logging.getLogger(__name__)

XRP_TOTAL_SUPPLY = "100000000000"
XRP_CIRCULATING_SUPPLY = "45000000000"


@dataclass(frozen=True)
class AssetInfo:
    """Descriptor for one asset as exposed by the asset query."""

    id: str
    name: str
    symbol: str
    total_supply: str
    circulating_supply: str
    issuer: Optional[str] = None
    domain: Optional[str] = None
    coin_gecko_id: Optional[str] = None
    coin_market_cap_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "totalSupply": self.total_supply,
            "circulatingSupply": self.circulating_supply,
        }
        if self.coin_gecko_id:
            payload["coinGeckoId"] = self.coin_gecko_id
        if self.coin_market_cap_id:
            payload["coinMarketCapId"] = self.coin_market_cap_id
        if self.issuer:
            metadata = {"issuer": self.issuer}
            if self.domain is not None:
                metadata["domain"] = self.domain
            payload["metadata"] = metadata
        return payload


XRP_ASSET = AssetInfo(
    id=NATIVE_CURRENCY,
    name=NATIVE_CURRENCY,
    symbol=NATIVE_CURRENCY,
    total_supply=XRP_TOTAL_SUPPLY,
    circulating_supply=XRP_CIRCULATING_SUPPLY,
    coin_gecko_id="ripple",
    coin_market_cap_id="xrp",
)


def decode_domain(domain_hex: Optional[str]) -> Optional[str]:
    """Decode the hex ``Domain`` field of an account; None when absent or unreadable."""
    if not domain_hex:
        return None
    try:
        return bytes.fromhex(domain_hex).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        logger.warning(f"Ignoring undecodable account domain {domain_hex!r}")
        return None


def resolve_asset(source: LedgerSource, asset_id: str) -> AssetInfo:
    """
    Describe one asset.

    XRP is answered from static figures. For ``currency.issuer`` the issuer's
    account domain and outstanding obligations are read from the node; the
    obligations stand in for both total and circulating supply.

    Raises:
        AssetNotResolvable: On malformed identifiers or node failures
    """
    try:
        currency, issuer = parse_asset_id(asset_id)
    except AdapterError as exc:
        raise AssetNotResolvable(asset_id, "Invalid asset ID format") from exc

    if issuer is None:
        return XRP_ASSET

    try:
        account_data = source.fetch_account_info(issuer)
        obligations = source.fetch_obligations(issuer)
    except AdapterError as exc:
        logger.error(f"Error fetching asset {asset_id}: {exc.message}")
        raise AssetNotResolvable(asset_id, "Failed to fetch asset information") from exc

    supply = str(obligations.get(currency) or "0")
    return AssetInfo(
        id=asset_id,
        name=f"{currency} ({issuer[:8]}...)",
        symbol=currency,
        total_supply=supply,
        circulating_supply=supply,
        issuer=issuer,
        domain=decode_domain(account_data.get("Domain")),
    )


def resolve_assets(
    source: LedgerSource,
    asset_ids: Iterable[str],
    cache=None,
) -> list[dict[str, Any]]:
    """Resolve a batch of assets; failures become ``{"id", "error"}`` entries.

    Successful descriptors are stored in ``cache`` (any object with
    ``get``/``set``) under ``asset-<id>``.
    """
    assets: list[dict[str, Any]] = []
    for asset_id in asset_ids:
        cache_key = f"asset-{asset_id}"
        cached = cache.get(cache_key) if cache is not None else None
        if cached is not None:
            assets.append(cached)
            continue

        try:
            asset = resolve_asset(source, asset_id).to_dict()
        except AssetNotResolvable as exc:
            assets.append({"id": asset_id, "error": exc.message})
            continue

        if cache is not None:
            cache.set(cache_key, asset)
        assets.append(asset)
    return assets
