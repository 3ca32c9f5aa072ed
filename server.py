from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from config import configure_logging, get_settings
from price_allocation import PricePrecedence, allocate, line_items_from_mappings, result_to_payload


server = FastMCP("PriceAllocationMCP")


# ---------------------------
# MCP Tools
# ---------------------------
@server.tool()
def ping() -> str:
    return "pong"


@server.tool()
def allocate_prices(
    target: str,
    items: List[Dict[str, Any]],
    precedence: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Distribute a transaction's total offer across its line items.

    items: ordered list of {id, price?, buy_price?, weight?}. Items with a
    price are kept; the rest share the remainder by weight (or evenly).
    The last eligible item absorbs rounding so the total is exact.
    Item ids must be unique; an item without an id gets its 1-based position.
    precedence: "price" (default) or "override" (buy_price wins).
    """
    line_items = line_items_from_mappings(items)
    policy = PricePrecedence(precedence) if precedence else get_settings().precedence
    return result_to_payload(allocate(target, line_items, policy))


# ---------------------------
# Entrypoint
# ---------------------------
def main() -> None:
    configure_logging()
    server.run()


if __name__ == "__main__":
    main()
