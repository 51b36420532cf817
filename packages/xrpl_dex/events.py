"""Swap-event derivation from individual ledger transactions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, Overflow, localcontext
from typing import Optional

from .amounts import DECIMAL_PRECISION, AssetAmount, format_decimal, normalize_amount
from .errors import DivisionByZero, MalformedAmount, MalformedTransaction
from .rpc import ripple_to_unix

EVENT_TYPE_SWAP = "swap"
SUCCESS_RESULT = "tesSUCCESS"
PRICE_PRECISION = DECIMAL_PRECISION

# (type tag, field for the leg given, field for the leg received)
_TRADE_FIELDS = {
    "OfferCreate": ("TakerGets", "TakerPays"),
    "Payment": ("Amount", "DeliverMin"),
}


@dataclass(frozen=True)
class TradeLegs:
    """Classifier output for one trade-bearing transaction."""

    leg_in: AssetAmount
    leg_out: AssetAmount
    maker: str
    txn_hash: str


@dataclass(frozen=True)
class SwapEvent:
    """A normalized swap, ready to be handed to the aggregator."""

    block_number: int
    block_timestamp: int
    txn_id: str
    txn_index: int
    maker: str
    pair_id: str
    asset0_in: str
    asset1_out: str
    price_native: str
    event_index: int = 0
    event_type: str = EVENT_TYPE_SWAP
    reserve0: str = "0"
    reserve1: str = "0"

    def to_dict(self) -> dict:
        return {
            "block": {
                "blockNumber": self.block_number,
                "blockTimestamp": self.block_timestamp,
            },
            "eventType": self.event_type,
            "txnId": self.txn_id,
            "txnIndex": self.txn_index,
            "eventIndex": self.event_index,
            "maker": self.maker,
            "pairId": self.pair_id,
            "asset0In": self.asset0_in,
            "asset1Out": self.asset1_out,
            "priceNative": self.price_native,
            "reserves": {"asset0": self.reserve0, "asset1": self.reserve1},
        }


def transaction_result(txn: dict) -> Optional[str]:
    """Return the engine result code from the transaction metadata, if present."""
    meta = txn.get("metaData") or txn.get("meta")
    if isinstance(meta, dict):
        return meta.get("TransactionResult")
    return None


def classify_transaction(txn: dict, require_success: bool = False) -> Optional[TradeLegs]:
    """Extract trade legs from a transaction, or None if it is not a trade.

    OfferCreate trades TakerGets for TakerPays. A Payment counts only when it
    carries DeliverMin, since otherwise the amount received is unknown.

    Raises:
        MalformedAmount: If a leg amount cannot be normalized
        MalformedTransaction: If a trade lacks its hash or account
    """
    fields = _TRADE_FIELDS.get(txn.get("TransactionType"))
    if fields is None:
        return None

    given_field, received_field = fields
    if received_field == "DeliverMin" and txn.get(received_field) is None:
        return None

    if require_success:
        result = transaction_result(txn)
        if result is not None and result != SUCCESS_RESULT:
            return None

    txn_hash = txn.get("hash")
    maker = txn.get("Account")
    if not txn_hash or not maker:
        raise MalformedTransaction(
            f"{txn.get('TransactionType')} transaction is missing its hash or account"
        )

    return TradeLegs(
        leg_in=normalize_amount(txn.get(given_field)),
        leg_out=normalize_amount(txn.get(received_field)),
        maker=maker,
        txn_hash=txn_hash,
    )


def build_pair_id(leg_in: AssetAmount, leg_out: AssetAmount) -> str:
    """Join both legs as ``<in>_<out>``; order follows the trade direction."""
    return f"{leg_in.asset_id}_{leg_out.asset_id}"


def compute_price(value_in: Decimal, value_out: Decimal) -> Decimal:
    """Units of the out leg per unit of the in leg."""
    if value_in == 0:
        raise DivisionByZero("Cannot price a trade whose input leg is zero")
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        try:
            return value_out / value_in
        except (Overflow, InvalidOperation) as exc:
            raise MalformedAmount(f"Price of {value_out} / {value_in} is out of range") from exc


def assemble_swap_event(
    ledger_index: int,
    close_time: int,
    txn_index: int,
    legs: TradeLegs,
    pair_id: Optional[str] = None,
    price: Optional[Decimal] = None,
) -> SwapEvent:
    """Build a SwapEvent; ``close_time`` is in ledger epoch seconds."""
    if pair_id is None:
        pair_id = build_pair_id(legs.leg_in, legs.leg_out)
    if price is None:
        price = compute_price(legs.leg_in.value, legs.leg_out.value)

    return SwapEvent(
        block_number=ledger_index,
        block_timestamp=ripple_to_unix(close_time),
        txn_id=legs.txn_hash,
        txn_index=txn_index,
        maker=legs.maker,
        pair_id=pair_id,
        asset0_in=format_decimal(legs.leg_in.value),
        asset1_out=format_decimal(legs.leg_out.value),
        price_native=format_decimal(price),
    )
