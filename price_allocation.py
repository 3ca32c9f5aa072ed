# price_allocation.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class PricePrecedence(str, enum.Enum):
    """Which field is authoritative for an item that already carries a value."""

    PRICE = "price"
    OVERRIDE = "override"


@dataclass(frozen=True)
class LineItem:
    item_id: Any
    price: Optional[Decimal] = None
    buy_price: Optional[Decimal] = None
    weight: Optional[Decimal] = None


@dataclass(frozen=True)
class ItemAllocation:
    item_id: Any
    price: Decimal
    buy_price: Decimal
    allocated: bool


@dataclass(frozen=True)
class AllocationWarning:
    item_id: Any
    reason: str
    detail: str
    transaction_id: Any = None


@dataclass
class AllocationResult:
    target: Decimal
    existing_total: Decimal
    remaining: Decimal
    allocations: Dict[Any, ItemAllocation] = field(default_factory=dict)
    warnings: List[AllocationWarning] = field(default_factory=list)

    def __getitem__(self, item_id: Any) -> ItemAllocation:
        return self.allocations[item_id]

    def __iter__(self):
        return iter(self.allocations.values())

    def __len__(self) -> int:
        return len(self.allocations)

    @property
    def allocated_total(self) -> Decimal:
        return sum((a.price for a in self if a.allocated), ZERO)

    @property
    def price_total(self) -> Decimal:
        return sum((a.price for a in self), ZERO)


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a loose numeric value to Decimal.

    None / "" -> None. Floats go through str() so 0.1 stays 0.1.
    Raises ValueError on anything that is not a number.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, str):
        value = value.strip().replace(",", "").lstrip("$")
        if not value:
            return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _positive(value: Optional[Decimal]) -> Decimal:
    # missing / negative -> 0
    if value is None or value <= 0:
        return Decimal(0)
    return value


def line_item_from_mapping(data: Mapping[str, Any], default_id: Any = None) -> LineItem:
    """
    Build a LineItem from a loose record.

    Accepted keys: id / item_id, price, buy_price, weight (or dwt).
    """
    item_id = data.get("id", data.get("item_id", default_id))
    weight = data.get("weight")
    if weight is None:
        weight = data.get("dwt")
    return LineItem(
        item_id=item_id,
        price=to_decimal(data.get("price")),
        buy_price=to_decimal(data.get("buy_price")),
        weight=to_decimal(weight),
    )


def line_items_from_mappings(records: Iterable[Any]) -> List[LineItem]:
    """
    Build LineItems from an ordered list of loose records.

    A record without an id gets its 1-based position. Raises ValueError on a
    record that is not an object or on an id seen earlier in the list.
    """
    items: List[LineItem] = []
    seen = set()
    for pos, data in enumerate(records, start=1):
        if not isinstance(data, Mapping):
            raise ValueError(f"Item {pos}: expected an object, got {type(data).__name__}")
        item = line_item_from_mapping(data, default_id=pos)
        if item.item_id in seen:
            raise ValueError(f"Item {pos}: duplicate item id {item.item_id!r}")
        seen.add(item.item_id)
        items.append(item)
    return items


def result_to_payload(result: AllocationResult) -> Dict[str, Any]:
    """Amounts as strings so no precision is lost over JSON."""
    return {
        "target": str(result.target),
        "existing_total": str(result.existing_total),
        "remaining": str(result.remaining),
        "allocated_total": str(result.allocated_total),
        "items": [
            {
                "id": a.item_id,
                "price": str(a.price),
                "buy_price": str(a.buy_price),
                "allocated": a.allocated,
            }
            for a in result
        ],
        "warnings": [
            {"item_id": w.item_id, "reason": w.reason, "detail": w.detail}
            for w in result.warnings
        ],
    }


def _carry_through(item: LineItem, precedence: PricePrecedence) -> Optional[ItemAllocation]:
    """Return the preserved allocation for an already-priced item, or None.

    Values are passed through as given, without rounding.
    """
    price = _positive(item.price)
    buy_price = _positive(item.buy_price)

    if price <= 0 and buy_price <= 0:
        return None

    if precedence is PricePrecedence.OVERRIDE:
        value = buy_price if buy_price > 0 else price
        return ItemAllocation(item.item_id, value, value, allocated=False)

    # A zero buy price means none was entered; it is not filled from price.
    return ItemAllocation(
        item.item_id,
        price if price > 0 else buy_price,
        buy_price if buy_price > 0 else ZERO,
        allocated=False,
    )


def _distribute(
    amount: Decimal,
    item_ids: List[Any],
    proposed: List[Decimal],
    result: AllocationResult,
) -> List[Decimal]:
    """
    Hand out rounded shares in order; the last id gets amount - distributed.

    A share that would push the running total past amount is clamped to what
    is left, so no share (the last one included) goes negative.
    """
    if not item_ids:
        return []
    if amount <= 0:
        return [ZERO] * len(item_ids)

    shares: List[Decimal] = []
    distributed = ZERO
    for item_id, share in zip(item_ids[:-1], proposed[:-1]):
        left = amount - distributed
        if share > left:
            result.warnings.append(
                AllocationWarning(
                    item_id=item_id,
                    reason="rounding_overshoot_clamped",
                    detail=f"share {share} clamped to {left}",
                )
            )
            share = left
        shares.append(share)
        distributed += share
    shares.append(amount - distributed)
    return shares


def _split_evenly(amount: Decimal, item_ids: List[Any], result: AllocationResult) -> List[Decimal]:
    if not item_ids or amount <= 0:
        return [ZERO] * len(item_ids)
    share = quantize(amount / len(item_ids))
    return _distribute(amount, item_ids, [share] * len(item_ids), result)


def allocate(
    target: Any,
    items: Sequence[LineItem],
    precedence: PricePrecedence = PricePrecedence.PRICE,
) -> AllocationResult:
    """
    Distribute an aggregate amount across line items that have no price.

    - Items with a usable price (or buy price) are carried through unchanged
    - The rest share max(0, target - existing) by weight, or evenly
    - Rounds to 2 decimals, half away from zero
    - The LAST eligible item in input order absorbs the rounding residual,
      so the allocated total matches exactly

    Never raises on degenerate input: negative target / weights count as
    zero, an empty item list gives an empty result.
    """
    precedence = PricePrecedence(precedence)
    target_amount = quantize(max(to_decimal(target) or Decimal(0), Decimal(0)))

    # Only the first item with a given id takes part
    unique: List[LineItem] = []
    duplicates: List[AllocationWarning] = []
    seen = set()
    for item in items:
        if item.item_id in seen:
            duplicates.append(
                AllocationWarning(
                    item_id=item.item_id,
                    reason="duplicate_item_id",
                    detail="repeated item id ignored; the first item with this id is used",
                )
            )
            continue
        seen.add(item.item_id)
        unique.append(item)

    carried: Dict[Any, ItemAllocation] = {}
    unpriced: List[LineItem] = []
    for item in unique:
        kept = _carry_through(item, precedence)
        if kept is None:
            unpriced.append(item)
        else:
            carried[item.item_id] = kept

    # Carried values may have more than 2 decimals; the amount left to hand out is rounded
    existing_total = sum((a.price for a in carried.values()), ZERO)
    remaining = quantize(max(target_amount - existing_total, ZERO))

    result = AllocationResult(
        target=target_amount,
        existing_total=existing_total,
        remaining=remaining,
        warnings=duplicates,
    )

    if existing_total > target_amount:
        result.warnings.append(
            AllocationWarning(
                item_id=None,
                reason="existing_exceeds_target",
                detail=f"existing prices {existing_total} exceed target {target_amount}",
            )
        )

    computed: Dict[Any, Decimal] = {}
    if unpriced:
        weights = [_positive(i.weight) for i in unpriced]
        total_weight = sum(weights, Decimal(0))

        if remaining <= 0:
            computed = {i.item_id: ZERO for i in unpriced}
        elif total_weight > 0:
            computed = _allocate_weighted(remaining, unpriced, weights, total_weight, result)
        else:
            ids = [i.item_id for i in unpriced]
            computed = dict(zip(ids, _split_evenly(remaining, ids, result)))

    # Input order is preserved in the result
    for item in unique:
        if item.item_id in carried:
            result.allocations[item.item_id] = carried[item.item_id]
        else:
            price = computed.get(item.item_id, ZERO)
            result.allocations[item.item_id] = ItemAllocation(
                item.item_id, price, price, allocated=True
            )

    return result


def _allocate_weighted(
    remaining: Decimal,
    unpriced: List[LineItem],
    weights: List[Decimal],
    total_weight: Decimal,
    result: AllocationResult,
) -> Dict[Any, Decimal]:
    weighted = [(i.item_id, w) for i, w in zip(unpriced, weights) if w > 0]
    ids = [item_id for item_id, _ in weighted]
    proposed = [quantize(remaining * w / total_weight) for _, w in weighted]
    computed = dict(zip(ids, _distribute(remaining, ids, proposed, result)))

    # Second pass: weightless items share whatever is left
    weightless = [i.item_id for i, w in zip(unpriced, weights) if w <= 0]
    if weightless:
        leftover = remaining - sum(computed.values(), ZERO)
        computed.update(zip(weightless, _split_evenly(leftover, weightless, result)))

    return computed


class WarningCollector:
    """
    Accumulates allocation warnings for one batch run.

    Create one per run, hand it to every allocation, report once at the end.
    """

    def __init__(self) -> None:
        self._warnings: List[AllocationWarning] = []

    def extend(self, warnings: Iterable[AllocationWarning], transaction_id: Any = None) -> None:
        for w in warnings:
            if transaction_id is not None and w.transaction_id is None:
                w = AllocationWarning(w.item_id, w.reason, w.detail, transaction_id)
            self._warnings.append(w)

    @property
    def warnings(self) -> List[AllocationWarning]:
        return list(self._warnings)

    def __len__(self) -> int:
        return len(self._warnings)

    def __bool__(self) -> bool:
        return bool(self._warnings)

    def report(self, log: Optional[logging.Logger] = None) -> None:
        log = log or logger
        for w in self._warnings:
            log.warning(
                "[ALLOC] transaction=%s item=%s reason=%s: %s",
                w.transaction_id,
                w.item_id,
                w.reason,
                w.detail,
            )
        if self._warnings:
            log.warning("[ALLOC] %d item(s) need manual review", len(self._warnings))
