"""Amount normalization for XRPL native and issued-currency amounts.

The ledger encodes an amount either as a string of integer drops (native XRP)
or as an object ``{"currency", "issuer", "value"}``. Both are normalized to
:class:`AssetAmount` with an exact ``Decimal`` value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Mapping, Optional

from .errors import MalformedAmount, MalformedIdentifier

NATIVE_CURRENCY = "XRP"
DROPS_PER_XRP = Decimal(1_000_000)
# Total XRP supply in drops.
MAX_DROPS = 10**17
DECIMAL_PRECISION = 34

# Issued values are a 16-digit mantissa scaled by 10**-96 .. 10**80.
MIN_ISSUED_EXPONENT = -96
MAX_ISSUED_EXPONENT = 80 + 15


@dataclass(frozen=True)
class AssetAmount:
    """Canonical amount: currency code, optional issuer and exact value."""

    currency: str
    issuer: Optional[str]
    value: Decimal

    def __post_init__(self) -> None:
        if not self.currency:
            raise MalformedAmount("Amount is missing a currency code")
        if self.is_native and self.issuer:
            raise MalformedAmount("Native XRP amounts cannot carry an issuer")
        if not self.is_native and not self.issuer:
            raise MalformedAmount(f"Issued amount in {self.currency} is missing its issuer")

    @property
    def is_native(self) -> bool:
        return self.currency == NATIVE_CURRENCY

    @property
    def asset_id(self) -> str:
        """``currency`` for XRP, ``currency.issuer`` otherwise."""
        if self.issuer:
            return f"{self.currency}.{self.issuer}"
        return self.currency


def _parse_drops(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise MalformedAmount(f"Unrecognized amount: {raw!r}")
    text = raw.strip() if isinstance(raw, str) else ""
    if isinstance(raw, int):
        drops = raw
    elif text.isascii() and text.isdigit() and len(text) <= len(str(MAX_DROPS)):
        drops = int(text)
    elif text.isascii() and text.isdigit():
        raise MalformedAmount(f"Native amount out of range: {raw!r}")
    else:
        raise MalformedAmount(f"Native amount must be integer drops, got {raw!r}")
    if drops < 0:
        raise MalformedAmount(f"Native amount cannot be negative: {raw!r}")
    if drops > MAX_DROPS:
        raise MalformedAmount(f"Native amount out of range: {raw!r}")
    return Decimal(drops) / DROPS_PER_XRP


def _parse_value(raw: Any) -> Decimal:
    # Floats are refused so no binary rounding enters the pipeline.
    if isinstance(raw, (bool, float)) or not isinstance(raw, (str, int, Decimal)):
        raise MalformedAmount(f"Issued amount value must be a decimal string, got {raw!r}")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise MalformedAmount(f"Unparsable amount value: {raw!r}") from exc
    if not value.is_finite():
        raise MalformedAmount(f"Amount value must be finite, got {raw!r}")
    if value and not MIN_ISSUED_EXPONENT <= value.adjusted() <= MAX_ISSUED_EXPONENT:
        raise MalformedAmount(f"Amount value out of range: {raw!r}")
    return value


def normalize_amount(raw: Any) -> AssetAmount:
    """Convert a raw ledger amount into an :class:`AssetAmount`.

    Args:
        raw: Integer drops (``str`` or ``int``) or an issued-currency mapping

    Returns:
        AssetAmount with value in whole currency units

    Raises:
        MalformedAmount: If the amount matches neither shape
    """
    if isinstance(raw, Mapping):
        currency = raw.get("currency")
        if not isinstance(currency, str) or "value" not in raw:
            raise MalformedAmount(f"Issued amount needs currency and value: {dict(raw)!r}")
        issuer = raw.get("issuer") or None
        return AssetAmount(currency=currency, issuer=issuer, value=_parse_value(raw["value"]))

    return AssetAmount(currency=NATIVE_CURRENCY, issuer=None, value=_parse_drops(raw))


def format_decimal(value: Decimal) -> str:
    """Render a decimal as a plain string without exponent or trailing zeros."""
    if value == 0:
        return "0"
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return format(value.normalize(), "f")


def parse_asset_id(asset_id: str) -> tuple[str, Optional[str]]:
    """Split ``XRP`` or ``currency.issuer`` into its parts.

    Raises:
        MalformedIdentifier: If an issued asset lacks its issuer or currency
    """
    cleaned = (asset_id or "").strip()
    if cleaned == NATIVE_CURRENCY:
        return NATIVE_CURRENCY, None
    currency, _, issuer = cleaned.partition(".")
    if not currency or not issuer or "." in issuer:
        raise MalformedIdentifier(f"Invalid asset ID format: {asset_id!r}")
    if currency == NATIVE_CURRENCY:
        raise MalformedIdentifier(f"XRP does not take an issuer: {asset_id!r}")
    return currency, issuer


def book_asset(currency: str, issuer: Optional[str]) -> dict:
    """Build the ``{"currency", "issuer"}`` object the node expects in book queries."""
    book = {"currency": currency}
    if issuer:
        book["issuer"] = issuer
    return book
