# demo_transactions.py
"""
DEMO trade-in transactions for the price allocation app.
Each one exercises a different allocation path.
"""

DEMO_TRANSACTIONS = [
    {
        "id": "TXN-1001",
        "title": "Gold chains by weight",
        "store_id": 1,
        "final_offer": "100.00",
        "items": [
            {"id": 1, "title": "14k rope chain", "price": None, "buy_price": None, "weight": "10"},
            {"id": 2, "title": "14k curb chain", "price": None, "buy_price": None, "weight": "30"},
        ],
    },
    {
        "id": "TXN-1002",
        "title": "Watch priced, rings by weight",
        "store_id": 1,
        "final_offer": "100.00",
        "items": [
            {"id": 1, "title": "Steel watch", "price": "40.00", "buy_price": None, "weight": None},
            {"id": 2, "title": "10k band", "price": None, "buy_price": None, "weight": "10"},
            {"id": 3, "title": "10k band", "price": None, "buy_price": None, "weight": "10"},
        ],
    },
    {
        "id": "TXN-1003",
        "title": "Mixed lot, no weights",
        "store_id": 2,
        "final_offer": "10.00",
        "items": [
            {"id": 1, "title": "Costume earrings", "price": None, "buy_price": None, "weight": None},
            {"id": 2, "title": "Brooch", "price": None, "buy_price": None, "weight": None},
            {"id": 3, "title": "Charm bracelet", "price": None, "buy_price": None, "weight": None},
        ],
    },
    {
        "id": "TXN-1004",
        "title": "Override above offer",
        "store_id": 2,
        "final_offer": "50.00",
        "items": [
            {"id": 1, "title": "Diamond pendant", "price": "60.00", "buy_price": "55.00", "weight": "2.5"},
        ],
    },
]


def find_demo(title: str):
    for txn in DEMO_TRANSACTIONS:
        if txn["title"] == title:
            return txn
    return None
