import json
import re
from decimal import Decimal

import pytest

from app import allocate_from_table, items_from_rows, rows_from_demo
from demo_transactions import DEMO_TRANSACTIONS, find_demo


def test_items_from_rows_skips_blank_rows_and_keeps_titles():
    rows = [
        ["1", "Ring", "", "", "10"],
        ["", "", "", "", ""],
        [None, "Chain", "12.50", None, float("nan")],
    ]
    items, titles = items_from_rows(rows)

    assert [i.item_id for i in items] == ["1", 3]
    assert items[0].weight == Decimal("10")
    assert items[0].price is None
    assert items[1].price == Decimal("12.50")
    assert items[1].weight is None
    assert titles == {"1": "Ring", 3: "Chain"}


def test_items_from_rows_names_bad_row():
    with pytest.raises(ValueError, match="Row 2"):
        items_from_rows([["a", "", "1", "", ""], ["b", "", "lots", "", ""]])


def test_items_from_rows_rejects_duplicate_ids():
    with pytest.raises(ValueError, match="duplicate"):
        items_from_rows([["a", "", "", "", "1"], ["a", "", "", "", "2"]])


def test_allocate_from_table_renders_widget_and_json():
    html, payload = allocate_from_table(
        100,
        [["a", "Ring", "", "", "10"], ["b", "Chain", "", "", "30"]],
        "price",
        transaction_id="TXN-1",
    )
    data = json.loads(payload)
    assert data["transaction_id"] == "TXN-1"
    assert data["precedence"] == "price"
    assert [i["price"] for i in data["items"]] == ["25.00", "75.00"]
    assert "Price Allocation TXN-1" in html
    assert "Ring" in html


def test_allocate_from_table_bad_input_returns_error():
    html, payload = allocate_from_table("abc", [["a", "", "", "", "1"]], "price")
    assert "ALLOCATION ERROR" in html
    assert "error" in json.loads(payload)


def test_allocate_from_table_no_items():
    html, payload = allocate_from_table(10, [], None)
    assert json.loads(payload) == {"error": "No line items entered."}


def test_widget_escapes_titles():
    html, _ = allocate_from_table(5, [["x", "<b>gold</b>", "", "", ""]], "price")
    assert "&lt;b&gt;gold&lt;/b&gt;" in html


@pytest.mark.parametrize("txn", DEMO_TRANSACTIONS, ids=[t["id"] for t in DEMO_TRANSACTIONS])
def test_demo_transactions_reconcile(txn):
    _, payload = allocate_from_table(txn["final_offer"], rows_from_demo(txn), "price")
    data = json.loads(payload)
    allocated = any(i["allocated"] for i in data["items"])
    if allocated:
        assert data["allocated_total"] == data["remaining"]


def test_find_demo():
    assert find_demo("Mixed lot, no weights")["id"] == "TXN-1003"
    assert find_demo("missing") is None


def test_widget_styles_only_classes_it_uses():
    html, _ = allocate_from_table(10, [["a", "", "4", "", ""], ["b", "", "", "", ""]], "price")
    style, markup = html.split("</style>", 1)

    styled = set(re.findall(r"\.([a-z][\w-]*)", style))
    used = set()
    for attr in re.findall(r'class="([^"]+)"', markup):
        used.update(attr.split())

    assert styled <= used


def test_app_payload_comes_from_allocation_core():
    import app
    import price_allocation

    assert app.result_to_payload is price_allocation.result_to_payload
    assert not hasattr(app, "server")
