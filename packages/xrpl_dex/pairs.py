"""Trading-pair discovery from the order book."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .amounts import book_asset, parse_asset_id
from .errors import MalformedIdentifier, PairNotFound
from .rpc import LedgerSource, ripple_to_unix

logger = logging.getLogger(__name__)

DEX_KEY = "xrpl"
# The ledger's order books have no per-market fee schedule.
FEE_BPS = 10


@dataclass(frozen=True)
class PairInfo:
    """Descriptor for a trading pair as exposed by the pair query."""

    id: str
    asset0_id: str
    asset1_id: str
    created_at_block_number: Any
    created_at_block_timestamp: Optional[int]
    dex_key: str = DEX_KEY
    fee_bps: int = FEE_BPS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "dexKey": self.dex_key,
            "asset0Id": self.asset0_id,
            "asset1Id": self.asset1_id,
            "feeBps": self.fee_bps,
            "createdAtBlockNumber": self.created_at_block_number,
            "createdAtBlockTimestamp": self.created_at_block_timestamp,
        }


def split_pair_id(pair_id: str) -> tuple[str, str]:
    """Split ``base_quote`` and validate both sides as asset ids.

    Raises:
        MalformedIdentifier: If the identifier is not exactly two valid assets
    """
    parts = (pair_id or "").strip().split("_")
    if len(parts) != 2 or not all(parts):
        raise MalformedIdentifier(f"Invalid pair ID format: {pair_id!r}")
    base, quote = parts
    parse_asset_id(base)
    parse_asset_id(quote)
    return base, quote


def resolve_pair(source: LedgerSource, pair_id: str) -> PairInfo:
    """
    Describe a pair from the best offer selling base for quote.

    The offer's book directory stands in for a creation block; the ledger
    model keeps no record of when a market first appeared.

    Raises:
        MalformedIdentifier: If ``pair_id`` does not parse
        PairNotFound: If the order book is empty
        RpcError: If the node cannot be queried
    """
    base, quote = split_pair_id(pair_id)
    taker_gets = book_asset(*parse_asset_id(base))
    taker_pays = book_asset(*parse_asset_id(quote))

    offer = source.fetch_best_offer(taker_gets, taker_pays)
    if not offer:
        logger.info(f"No offers in book for pair {pair_id}")
        raise PairNotFound(pair_id)

    offer_date = offer.get("date")
    return PairInfo(
        id=pair_id,
        asset0_id=base,
        asset1_id=quote,
        created_at_block_number=offer.get("BookDirectory", offer.get("bookDirectory")),
        created_at_block_timestamp=ripple_to_unix(offer_date) if offer_date is not None else None,
    )
