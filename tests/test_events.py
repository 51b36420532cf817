"""Offline unit tests for trade classification, pair ids, prices and event assembly."""

from __future__ import annotations

from decimal import Decimal

import pytest

from packages.xrpl_dex.amounts import AssetAmount
from packages.xrpl_dex.errors import DivisionByZero, MalformedAmount, MalformedTransaction
from packages.xrpl_dex.events import (
    assemble_swap_event,
    build_pair_id,
    classify_transaction,
    compute_price,
)
from packages.xrpl_dex.rpc import RIPPLE_EPOCH_OFFSET
from tests._fakes import offer_create, payment, usd


def _xrp(value: str) -> AssetAmount:
    return AssetAmount(currency="XRP", issuer=None, value=Decimal(value))


def _usd(value: str) -> AssetAmount:
    return AssetAmount(currency="USD", issuer="rISSUER", value=Decimal(value))


def test_offer_create_legs_are_taker_gets_then_taker_pays():
    legs = classify_transaction(offer_create("H1", "1000000", usd("2")))
    assert legs is not None
    assert legs.leg_in == _xrp("1")
    assert legs.leg_out == _usd("2")
    assert legs.maker == "rMAKER"
    assert legs.txn_hash == "H1"


def test_payment_with_deliver_min_is_a_trade():
    legs = classify_transaction(payment("H2", usd("10"), deliver_min="5000000"))
    assert legs is not None
    assert legs.leg_in == _usd("10")
    assert legs.leg_out == _xrp("5")
    assert legs.maker == "rSENDER"


def test_payment_without_deliver_min_is_skipped():
    assert classify_transaction(payment("H3", "1000000")) is None


@pytest.mark.parametrize("txn_type", ["OfferCancel", "TrustSet", "AccountSet", "EscrowCreate"])
def test_other_transaction_types_are_skipped(txn_type):
    txn = {"TransactionType": txn_type, "hash": "H", "Account": "rA", "TakerGets": "1"}
    assert classify_transaction(txn) is None


def test_failed_offer_still_counts_by_default():
    txn = offer_create("H4", "1000000", usd("2"), result="tecUNFUNDED_OFFER")
    assert classify_transaction(txn) is not None


def test_failed_offer_is_dropped_when_success_required():
    txn = offer_create("H4", "1000000", usd("2"), result="tecUNFUNDED_OFFER")
    assert classify_transaction(txn, require_success=True) is None


def test_success_filter_reads_api_v2_meta_and_missing_meta():
    ok = offer_create("H5", "1000000", usd("2"))
    ok.pop("metaData")
    assert classify_transaction(ok, require_success=True) is not None

    failed = offer_create("H6", "1000000", usd("2"))
    failed.pop("metaData")
    failed["meta"] = {"TransactionResult": "tecKILLED"}
    assert classify_transaction(failed, require_success=True) is None


def test_offer_with_bad_amount_raises():
    with pytest.raises(MalformedAmount):
        classify_transaction(offer_create("H7", "1.5", usd("2")))


def test_offer_missing_taker_pays_raises():
    txn = offer_create("H7", "1000000", usd("2"))
    del txn["TakerPays"]
    with pytest.raises(MalformedAmount):
        classify_transaction(txn)


def test_trade_without_hash_raises():
    txn = offer_create("", "1000000", usd("2"))
    with pytest.raises(MalformedTransaction):
        classify_transaction(txn)


def test_pair_id_follows_leg_order():
    assert build_pair_id(_xrp("1"), _usd("2")) == "XRP_USD.rISSUER"
    assert build_pair_id(_usd("2"), _xrp("1")) == "USD.rISSUER_XRP"


def test_compute_price_is_exact_quotient():
    assert compute_price(Decimal("1"), Decimal("2")) == Decimal("2")
    assert compute_price(Decimal("0.1"), Decimal("0.3")) == Decimal("3")
    assert compute_price(Decimal("4"), Decimal("1")) == Decimal("0.25")


def test_compute_price_rejects_zero_input():
    with pytest.raises(DivisionByZero):
        compute_price(Decimal("0"), Decimal("5"))


def test_compute_price_allows_zero_output():
    assert compute_price(Decimal("5"), Decimal("0")) == 0


def test_compute_price_overflow_is_malformed_amount():
    with pytest.raises(MalformedAmount):
        compute_price(Decimal("1e-999999"), Decimal("1e999999"))


def test_compute_price_keeps_34_significant_digits():
    assert compute_price(Decimal("3"), Decimal("1")) == Decimal("0." + "3" * 34)


def test_assemble_swap_event_matches_wire_shape():
    legs = classify_transaction(offer_create("ABC", "1000000", usd("2")))
    event = assemble_swap_event(ledger_index=42, close_time=700_000_000, txn_index=3, legs=legs)

    assert event.to_dict() == {
        "block": {"blockNumber": 42, "blockTimestamp": 700_000_000 + RIPPLE_EPOCH_OFFSET},
        "eventType": "swap",
        "txnId": "ABC",
        "txnIndex": 3,
        "eventIndex": 0,
        "maker": "rMAKER",
        "pairId": "XRP_USD.rISSUER",
        "asset0In": "1",
        "asset1Out": "2",
        "priceNative": "2",
        "reserves": {"asset0": "0", "asset1": "0"},
    }


def test_assemble_swap_event_zero_input_raises():
    legs = classify_transaction(offer_create("Z", "0", usd("2")))
    with pytest.raises(DivisionByZero):
        assemble_swap_event(1, 0, 0, legs)
