import pytest

from server import allocate_prices, ping


def test_ping():
    assert ping() == "pong"


def test_allocate_prices_returns_string_amounts():
    payload = allocate_prices(
        "100.00",
        [
            {"id": "a", "weight": 10},
            {"id": "b", "weight": 30},
        ],
    )
    assert payload["target"] == "100.00"
    assert payload["allocated_total"] == "100.00"
    assert [(i["id"], i["price"], i["buy_price"]) for i in payload["items"]] == [
        ("a", "25.00", "25.00"),
        ("b", "75.00", "75.00"),
    ]
    assert payload["warnings"] == []


def test_allocate_prices_defaults_ids_to_position():
    payload = allocate_prices("10", [{}, {}, {}])
    assert [i["id"] for i in payload["items"]] == [1, 2, 3]
    assert [i["price"] for i in payload["items"]] == ["3.33", "3.33", "3.34"]


def test_allocate_prices_override_precedence():
    payload = allocate_prices(
        "100",
        [{"id": 1, "price": "40", "buy_price": "20"}, {"id": 2}],
        precedence="override",
    )
    first, second = payload["items"]
    assert first == {"id": 1, "price": "20", "buy_price": "20", "allocated": False}
    assert second["price"] == "80.00"


def test_allocate_prices_reports_overage():
    payload = allocate_prices("50", [{"id": 1, "price": 60}])
    assert payload["remaining"] == "0.00"
    assert payload["warnings"][0]["reason"] == "existing_exceeds_target"


def test_allocate_prices_rejects_default_id_colliding_with_explicit_id():
    # the second item defaults to id 2
    with pytest.raises(ValueError, match="duplicate item id 2"):
        allocate_prices("10", [{"id": 2, "weight": 1}, {"weight": 1}])


def test_allocate_prices_rejects_non_object_item():
    with pytest.raises(ValueError, match="Item 1"):
        allocate_prices("10", [5])
