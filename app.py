# app.py — Transaction price allocation demo — Gradio 4.x
# Rule: items that already carry a price are never changed.
# The final offer remainder goes to unpriced items by weight, or evenly.

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import gradio as gr

from allocation_widget import render_allocation_widget, render_error_widget
from config import get_settings
from demo_transactions import DEMO_TRANSACTIONS, find_demo
from price_allocation import LineItem, PricePrecedence, allocate, result_to_payload, to_decimal


logger = logging.getLogger(__name__)

TABLE_HEADERS = ["id", "title", "price", "buy_price", "weight"]


# -----------------------------
# Table parsing
# -----------------------------

def _cell(row: Sequence[Any], idx: int) -> Any:
    if idx >= len(row):
        return None
    value = row[idx]
    # empty Dataframe cells come back as NaN or ""
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def items_from_rows(rows: Optional[Sequence[Sequence[Any]]]) -> Tuple[List[LineItem], Dict[Any, str]]:
    """
    Converts Dataframe rows [id, title, price, buy_price, weight] to LineItems.

    Rows without any value are skipped; a missing id becomes the row number.
    Raises ValueError naming the row on a non-numeric amount.
    """
    items: List[LineItem] = []
    titles: Dict[Any, str] = {}
    seen = set()

    for pos, row in enumerate(rows or [], start=1):
        cells = [_cell(row, i) for i in range(len(TABLE_HEADERS))]
        if all(c is None for c in cells):
            continue

        item_id = cells[0] if cells[0] is not None else pos
        if isinstance(item_id, float) and item_id.is_integer():
            item_id = int(item_id)
        if item_id in seen:
            raise ValueError(f"Row {pos}: duplicate item id {item_id!r}")
        seen.add(item_id)

        try:
            item = LineItem(
                item_id=item_id,
                price=to_decimal(cells[2]),
                buy_price=to_decimal(cells[3]),
                weight=to_decimal(cells[4]),
            )
        except ValueError as e:
            raise ValueError(f"Row {pos}: {e}") from None

        items.append(item)
        if cells[1] is not None:
            titles[item_id] = str(cells[1])

    return items, titles


def rows_from_demo(txn: Dict[str, Any]) -> List[List[Any]]:
    return [
        [it.get("id"), it.get("title", ""), it.get("price") or "", it.get("buy_price") or "", it.get("weight") or ""]
        for it in txn.get("items", [])
    ]


# -----------------------------
# Core pipeline
# -----------------------------

def allocate_from_table(
    target: Any,
    rows: Optional[Sequence[Sequence[Any]]],
    precedence: Optional[str] = None,
    transaction_id: Any = None,
) -> Tuple[str, str]:
    """
    Returns: (html_widget, json_payload_pretty)
    """
    settings = get_settings()

    try:
        items, titles = items_from_rows(rows)
        policy = PricePrecedence(precedence) if precedence else settings.precedence
        target_amount = to_decimal(target)
    except ValueError as e:
        logger.warning("[ALLOC] Rejected input: %s", e)
        payload = {"error": str(e)}
        return render_error_widget(str(e)), json.dumps(payload, ensure_ascii=False, indent=2)

    if not items:
        msg = "No line items entered."
        return render_error_widget(msg), json.dumps({"error": msg}, indent=2)

    result = allocate(target_amount, items, policy)
    for w in result.warnings:
        logger.warning("[ALLOC] item=%s reason=%s: %s", w.item_id, w.reason, w.detail)

    payload = result_to_payload(result)
    payload["precedence"] = policy.value
    if transaction_id:
        payload["transaction_id"] = transaction_id

    html = render_allocation_widget(
        result,
        currency=settings.currency,
        titles=titles,
        transaction_id=transaction_id,
    )
    return html, json.dumps(payload, ensure_ascii=False, indent=2)


# -----------------------------
# Gradio App
# -----------------------------

def build_app() -> gr.Blocks:
    settings = get_settings()

    with gr.Blocks(
        title="Transaction Price Allocation",
        analytics_enabled=False,
    ) as demo:
        gr.Markdown(
            "# Transaction Price Allocation\n"
            "Enter the **final offer** and the line items. Items with a price are kept; "
            "the rest share the remainder **by weight** (or evenly when no weights are given).\n\n"
            "The last eligible item absorbs rounding so the total matches to the cent."
        )

        with gr.Row():
            demo_choice = gr.Dropdown(
                choices=[t["title"] for t in DEMO_TRANSACTIONS],
                label="Load demo transaction",
            )
            txn_id = gr.Textbox(label="Transaction ID", value="")
        with gr.Row():
            target = gr.Number(label=f"Final offer ({settings.currency})", value=0, precision=2)
            precedence = gr.Dropdown(
                choices=[p.value for p in PricePrecedence],
                value=settings.precedence.value,
                label="Precedence for already-priced items",
            )
        items_table = gr.Dataframe(
            headers=TABLE_HEADERS,
            datatype=["str", "str", "str", "str", "str"],
            row_count=(3, "dynamic"),
            col_count=(len(TABLE_HEADERS), "fixed"),
            type="array",
            label="Line items (order matters: last eligible item takes the rounding remainder)",
        )

        allocate_btn = gr.Button("Allocate")
        gr.Markdown("---")

        with gr.Row():
            html_out = gr.HTML(label="Allocation audit")
        with gr.Row():
            json_out = gr.Code(label="Allocation JSON", language="json")

        def _load(title):
            txn = find_demo(title) if title else None
            if txn is None:
                return gr.update(), gr.update(), gr.update()
            return float(txn["final_offer"]), rows_from_demo(txn), txn["id"]

        def _run(amount, rows, policy, tid):
            return allocate_from_table(amount, rows, policy, transaction_id=tid or None)

        demo_choice.change(_load, inputs=[demo_choice], outputs=[target, items_table, txn_id])
        allocate_btn.click(
            _run,
            inputs=[target, items_table, precedence, txn_id],
            outputs=[html_out, json_out],
        )

        gr.Markdown(
            "—\n"
            "Amounts use exact decimal arithmetic, rounded half-up to cents."
        )

    return demo


if __name__ == "__main__":
    app = build_app()
    app.queue()
    app.launch()
