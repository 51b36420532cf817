"""Ledger range scanning: fetch ledgers in order and emit swap events."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from .errors import AdapterError, InvalidRange, LedgerFetchError
from .events import SwapEvent, assemble_swap_event, classify_transaction
from .rpc import LedgerHead, LedgerSnapshot, LedgerSource

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Events and bookkeeping for one scanned ledger range."""

    from_block: int
    to_block: int
    events: list[SwapEvent] = field(default_factory=list)
    ledgers_scanned: int = 0
    transactions_seen: int = 0
    skipped_transactions: int = 0
    skipped_reasons: dict[str, int] = field(default_factory=dict)

    def add_skip_reason(self, reason: str) -> None:
        self.skipped_transactions += 1
        self.skipped_reasons[reason] = self.skipped_reasons.get(reason, 0) + 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "events": [event.to_dict() for event in self.events],
            "skippedTransactions": self.skipped_transactions,
        }


def validate_range(from_block: int, to_block: int, max_range: Optional[int] = None) -> None:
    """Reject negative, inverted or oversized ranges.

    Raises:
        InvalidRange: If the bounds cannot be scanned
    """
    if from_block < 0 or to_block < 0:
        raise InvalidRange("fromBlock and toBlock must be non-negative")
    if from_block > to_block:
        raise InvalidRange("fromBlock must not be greater than toBlock")
    if max_range is not None and to_block - from_block + 1 > max_range:
        raise InvalidRange(f"Block range exceeds the maximum of {max_range} ledgers")


def fetch_latest_block(source: LedgerSource) -> LedgerHead:
    """Return the latest validated ledger head."""
    return source.fetch_validated_ledger_head()


def _fetch(source: LedgerSource, index: int) -> LedgerSnapshot:
    try:
        return source.fetch_ledger(index)
    except AdapterError as exc:
        raise LedgerFetchError(index, exc.message) from exc


def _iter_ledgers(
    source: LedgerSource, from_block: int, to_block: int, max_workers: int
) -> Iterator[LedgerSnapshot]:
    if max_workers <= 1:
        for index in range(from_block, to_block + 1):
            yield _fetch(source, index)
        return

    # Bounded windows keep at most max_workers ledgers in memory; map() keeps order.
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for start in range(from_block, to_block + 1, max_workers):
            window = range(start, min(start + max_workers, to_block + 1))
            yield from executor.map(lambda index: _fetch(source, index), window)


def scan_ledger(
    snapshot: LedgerSnapshot, result: ScanResult, require_success: bool = False
) -> None:
    """Append the swap events of one ledger to ``result``."""
    for txn_index, txn in enumerate(snapshot.transactions):
        result.transactions_seen += 1
        try:
            legs = classify_transaction(txn, require_success=require_success)
            if legs is None:
                continue
            event = assemble_swap_event(snapshot.index, snapshot.close_time, txn_index, legs)
        except AdapterError as exc:
            result.add_skip_reason(exc.code)
            logger.debug(
                f"Skipping txn {txn.get('hash', '?')} in ledger {snapshot.index}: {exc.message}"
            )
            continue
        result.events.append(event)


def scan_ledger_range(
    source: LedgerSource,
    from_block: int,
    to_block: int,
    require_success: bool = False,
    max_workers: int = 1,
    max_range: Optional[int] = None,
) -> ScanResult:
    """
    Collect swap events for every ledger in ``[from_block, to_block]``.

    Ledgers are visited in ascending order and transactions in ledger order.
    A single failed ledger fetch fails the whole range; malformed
    transactions are skipped and counted.

    Args:
        source: Ledger data collaborator
        from_block: First ledger index (inclusive)
        to_block: Last ledger index (inclusive)
        require_success: Ignore transactions whose result is not tesSUCCESS
        max_workers: Ledgers fetched concurrently (1 = sequential)
        max_range: Largest number of ledgers accepted in one request

    Returns:
        ScanResult with events and skip counters

    Raises:
        InvalidRange: If the bounds are invalid
        LedgerFetchError: If any ledger in the range cannot be fetched
    """
    validate_range(from_block, to_block, max_range)
    result = ScanResult(from_block=from_block, to_block=to_block)

    for snapshot in _iter_ledgers(source, from_block, to_block, max_workers):
        scan_ledger(snapshot, result, require_success=require_success)
        result.ledgers_scanned += 1

    if result.skipped_transactions:
        logger.info(
            f"Scanned ledgers {from_block}-{to_block}: {len(result.events)} events, "
            f"{result.skipped_transactions} skipped transactions {result.skipped_reasons}"
        )
    return result
