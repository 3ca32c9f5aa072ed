# backfill.py
"""
Backfill estimated prices for transaction items that have none.

Selects transactions with final_offer > 0 and at least one item whose price
is missing or zero, runs the allocator over each transaction's items (in
source order) and writes back price / buy_price for items that were unpriced
and received a positive value.

Usage:
  backfill-item-prices --input transactions.json [--output out.json]
                       [--store-id 3] [--dry-run] [--precedence override]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from config import configure_logging, get_settings
from price_allocation import (
    LineItem,
    PricePrecedence,
    WarningCollector,
    allocate,
    line_items_from_mappings,
    to_decimal,
)


logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100


@dataclass
class TransactionRecord:
    transaction_id: Any
    final_offer: Decimal
    items: List[LineItem] = field(default_factory=list)
    store_id: Any = None


@dataclass
class BackfillSummary:
    processed_transactions: int = 0
    updated_items: int = 0
    dry_run: bool = False
    warnings: WarningCollector = field(default_factory=WarningCollector)


class RecordSource(Protocol):
    def iter_transactions(self) -> Iterator[TransactionRecord]: ...


class RecordSink(Protocol):
    def update_item(self, transaction_id: Any, item_id: Any, price: Decimal, buy_price: Decimal) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


# ---------------------------
# JSON file source / sink
# ---------------------------
def load_document(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        doc = json.load(fh)
    if not isinstance(doc, dict) or not isinstance(doc.get("transactions"), list):
        raise ValueError(f"{path}: expected an object with a 'transactions' list")
    return doc


def transaction_from_mapping(data: Any) -> TransactionRecord:
    """Raises ValueError on a malformed transaction or item record."""
    if not isinstance(data, dict):
        raise ValueError(f"Transaction record must be an object, got {type(data).__name__}")
    raw_items = data.get("items") or []
    if not isinstance(raw_items, list):
        raise ValueError(f"Transaction {data.get('id')!r}: 'items' must be a list")
    try:
        return TransactionRecord(
            transaction_id=data.get("id"),
            final_offer=to_decimal(data.get("final_offer")) or Decimal(0),
            items=line_items_from_mappings(raw_items),
            store_id=data.get("store_id"),
        )
    except ValueError as e:
        raise ValueError(f"Transaction {data.get('id')!r}: {e}") from None


class JsonRecordSource:
    def __init__(self, document: Dict[str, Any]):
        self.document = document

    def iter_transactions(self) -> Iterator[TransactionRecord]:
        for data in self.document["transactions"]:
            yield transaction_from_mapping(data)


class JsonRecordSink:
    """
    Applies updates to a JSON document; nothing is written until commit().
    """

    def __init__(self, document: Dict[str, Any], path: Optional[Path] = None):
        self.document = document
        self.path = path
        self._pending: List[tuple] = []

    def update_item(self, transaction_id: Any, item_id: Any, price: Decimal, buy_price: Decimal) -> None:
        self._pending.append((transaction_id, item_id, price, buy_price))

    def commit(self) -> None:
        index = {t.get("id"): t for t in self.document["transactions"]}
        for transaction_id, item_id, price, buy_price in self._pending:
            txn = index.get(transaction_id)
            if txn is None:
                raise KeyError(f"Unknown transaction {transaction_id!r}")
            items = txn.get("items") or []
            for pos, item in enumerate(items, start=1):
                if item.get("id", item.get("item_id", pos)) == item_id:
                    item["price"] = str(price)
                    item["buy_price"] = str(buy_price)
                    break
            else:
                raise KeyError(f"Unknown item {item_id!r} in transaction {transaction_id!r}")
        self._pending = []

        if self.path is not None:
            with open(self.path, "w", encoding="utf-8") as fh:
                json.dump(self.document, fh, ensure_ascii=False, indent=2)
            logger.info("[BACKFILL] Wrote %s", self.path)

    def rollback(self) -> None:
        self._pending = []


# ---------------------------
# Runner
# ---------------------------
def needs_backfill(txn: TransactionRecord) -> bool:
    if txn.final_offer <= 0:
        return False
    return any(item.price is None or item.price == 0 for item in txn.items)


def run_backfill(
    source: RecordSource,
    sink: RecordSink,
    precedence: PricePrecedence = PricePrecedence.PRICE,
    store_id: Any = None,
    dry_run: bool = False,
    collector: Optional[WarningCollector] = None,
) -> BackfillSummary:
    if collector is None:
        collector = WarningCollector()
    summary = BackfillSummary(dry_run=dry_run, warnings=collector)

    if dry_run:
        logger.warning("[BACKFILL] DRY RUN MODE - no changes will be made")

    try:
        for txn in source.iter_transactions():
            if store_id is not None and str(txn.store_id) != str(store_id):
                continue
            if not needs_backfill(txn):
                continue

            result = allocate(txn.final_offer, txn.items, precedence)
            summary.warnings.extend(result.warnings, transaction_id=txn.transaction_id)

            # repeated ids were dropped by allocate(); write each id once
            seen = set()
            for item in txn.items:
                if item.item_id in seen:
                    continue
                seen.add(item.item_id)
                current = item.price or Decimal(0)
                new = result[item.item_id]
                if current <= 0 and new.price > 0:
                    if dry_run:
                        logger.info(
                            "[BACKFILL] Would update item #%s: price=0 -> %s, buy_price -> %s",
                            item.item_id,
                            new.price,
                            new.buy_price,
                        )
                    else:
                        sink.update_item(txn.transaction_id, item.item_id, new.price, new.buy_price)
                    summary.updated_items += 1

            summary.processed_transactions += 1
            if summary.processed_transactions % PROGRESS_EVERY == 0:
                logger.info("[BACKFILL] Processed %d transactions...", summary.processed_transactions)

        if dry_run:
            sink.rollback()
        else:
            sink.commit()
    except Exception:
        sink.rollback()
        raise

    verb = "Would have updated" if dry_run else "Updated"
    logger.info(
        "[BACKFILL] %s %d items across %d transactions",
        verb,
        summary.updated_items,
        summary.processed_transactions,
    )
    summary.warnings.report(logger)
    return summary


# ---------------------------
# CLI
# ---------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backfill-item-prices",
        description="Backfill prices for transaction items with 0 price whose transaction has a final offer",
    )
    parser.add_argument("--input", required=True, type=Path, help="JSON file with a 'transactions' list")
    parser.add_argument("--output", type=Path, help="Where to write the result (default: --input)")
    parser.add_argument("--store-id", help="Only process this store")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be updated without writing")
    parser.add_argument(
        "--precedence",
        choices=[p.value for p in PricePrecedence],
        help="Authoritative field for already-priced items (default: ALLOCATION_PRECEDENCE or 'price')",
    )
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper() if args.log_level else None)

    precedence = PricePrecedence(args.precedence) if args.precedence else get_settings().precedence

    try:
        document = load_document(args.input)
        source = JsonRecordSource(document)
        sink = JsonRecordSink(document, path=args.output or args.input)
        run_backfill(
            source,
            sink,
            precedence=precedence,
            store_id=args.store_id,
            dry_run=args.dry_run,
        )
    except (OSError, ValueError, KeyError) as e:
        logger.error("[BACKFILL] Error: %s", e)
        return 1
    except Exception:
        logger.exception("[BACKFILL] Unexpected error")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
