import html as html_lib
from typing import Any, Dict, List, Optional

from price_allocation import AllocationResult


def render_allocation_widget(
    result: AllocationResult,
    currency: str = "USD",
    titles: Optional[Dict[Any, str]] = None,
    transaction_id: Any = None,
) -> str:
    """
    Renders an allocation audit widget:
      - Line items (source: kept / allocated, price, buy price)
      - Reconciliation (target / existing / allocated / difference)
      - Warnings for manual review
      - Print / PDF button
    """

    titles = titles or {}

    # Reconciliation: allocated items must add up to the remaining amount
    allocated_total = result.allocated_total
    has_allocated = any(a.allocated for a in result)
    diff = (allocated_total - result.remaining) if has_allocated else 0

    # Helpers
    def fmt(x: Any) -> str:
        try:
            return f"{float(x):,.2f}"
        except (TypeError, ValueError):
            return str(x)

    def safe(x: Any) -> str:
        return "" if x is None else html_lib.escape(str(x))

    # -------------------------------------------------
    # Item rows
    # -------------------------------------------------
    rows_html = ""
    for idx, a in enumerate(result, start=1):
        source = "allocated" if a.allocated else "kept"
        rows_html += f"""
        <tr>
          <td>{idx}</td>
          <td>{safe(a.item_id)}</td>
          <td>{safe(titles.get(a.item_id, ''))}</td>
          <td><span class="alloc-badge alloc-{source}">{source}</span></td>
          <td class="right">{fmt(a.price)}</td>
          <td class="right">{fmt(a.buy_price)}</td>
        </tr>
        """

    warnings: List[str] = []
    for w in result.warnings:
        who = f"item {safe(w.item_id)}" if w.item_id is not None else "transaction"
        warnings.append(f"<li><b>{safe(w.reason)}</b> ({who}): {safe(w.detail)}</li>")
    warnings_html = "".join(warnings) or '<li class="muted">None</li>'

    # -------------------------------------------------
    # HTML Widget
    # -------------------------------------------------
    html = f"""
<style>
  .alloc-container {{ font-family: system-ui, sans-serif; max-width: 820px; margin: 0 auto; padding: 12px 20px; border: 1px solid #d0d7de; }}
  .alloc-section-title {{ font-weight: 700; margin: 14px 0 6px 0; }}
  table.alloc-table {{ width: 100%; border-collapse: collapse; font-size: 12px; }}
  table.alloc-table th, table.alloc-table td {{ border: 1px solid #d1d5db; padding: 4px 8px; }}
  table.alloc-table th {{ background: #f3f4f6; }}
  .alloc-badge {{ padding: 1px 8px; border-radius: 999px; font-size: 10px; font-weight: 700; }}
  .alloc-kept {{ background: #e5e7eb; }}
  .alloc-allocated {{ background: #bbf7d0; }}
  .muted {{ color: #6b7280; font-size: 11px; }}
  .right {{ text-align: right; }}
  .alloc-print-btn {{ margin-top: 10px; padding: 6px 12px; cursor: pointer; }}
</style>

<div class="alloc-container">

  <div style="font-weight:800;font-size:18px;">Price Allocation {safe(transaction_id or '')}</div>
  <div class="muted">Final offer distributed across line items ({safe(currency)})</div>

  <!-- 1) Line items -->
  <div class="alloc-section-title">1) Line Items</div>
  <table class="alloc-table">
    <tr>
      <th>#</th>
      <th>Item ID</th>
      <th>Title</th>
      <th>Source</th>
      <th class="right">Price ({safe(currency)})</th>
      <th class="right">Buy Price ({safe(currency)})</th>
    </tr>
    {rows_html}
  </table>

  <!-- 2) Reconciliation -->
  <div class="alloc-section-title">2) Reconciliation</div>
  <table class="alloc-table">
    <tr><td>Final offer (target)</td><td class="right">{fmt(result.target)}</td></tr>
    <tr><td>Existing prices (kept)</td><td class="right">{fmt(result.existing_total)}</td></tr>
    <tr><td>Remaining to allocate</td><td class="right">{fmt(result.remaining)}</td></tr>
    <tr><td>Allocated total</td><td class="right">{fmt(allocated_total)}</td></tr>
    <tr><td><b>Difference</b></td><td class="right"><b>{fmt(diff)}</b></td></tr>
  </table>
  <div class="muted">Difference should be 0.00 after reconciliation</div>

  <!-- 3) Warnings -->
  <div class="alloc-section-title">3) Warnings (manual review)</div>
  <ul style="font-size:12px;">{warnings_html}</ul>

  <button class="alloc-print-btn" onclick="window.print()">Print / Save as PDF</button>

</div>
"""
    return html


def render_error_widget(message: str) -> str:
    return f"""
    <div style="font-family:Segoe UI,system-ui;max-width:900px;margin:0 auto;border:1px solid #ef4444;padding:14px;">
      <div style="font-weight:700;color:#b91c1c;">ALLOCATION ERROR</div>
      <div style="margin-top:8px;">{html_lib.escape(message)}</div>
    </div>
    """
