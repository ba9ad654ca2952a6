# supermarket_ai/services/sales.py
import io
from datetime import datetime, timedelta

import openpyxl
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import selectinload

from supermarket_ai import helpers
from supermarket_ai.models import Sale
from supermarket_ai.services import ServiceError


def _parse_date(s: str | None, field: str):
    """YYYY-MM-DD -> datetime at midnight, None when empty."""
    if not s:
        return None
    try:
        return datetime.strptime(s.strip(), "%Y-%m-%d")
    except ValueError:
        raise ServiceError(f"Invalid '{field}' date (expected YYYY-MM-DD)")


def sales_query(filters: dict):
    """Sales newest first; ?from & ?to are both inclusive days."""
    q = Sale.query.options(selectinload(Sale.items))
    d_from = _parse_date(filters.get("from"), "from")
    d_to = _parse_date(filters.get("to"), "to")
    if d_from:
        q = q.filter(Sale.created_at >= d_from)
    if d_to:
        q = q.filter(Sale.created_at < d_to + timedelta(days=1))
    return q.order_by(Sale.created_at.desc())


def list_sales(filters: dict) -> tuple[list[Sale], dict]:
    items = sales_query(filters).all()
    summary = {
        "count": len(items),
        "total_amount": helpers.total_sales(items),
    }
    summary["total_formatted"] = helpers.format_currency(summary["total_amount"])
    return items, summary


def export_xlsx(filters: dict) -> tuple[io.BytesIO, str]:
    """Workbook with one row per sale item, using the same filters as the list."""
    sales = sales_query(filters).all()

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Sales"

    headers = [
        "Sale ID", "Date", "Product", "Quantity",
        "Unit price (R)", "Subtotal (R)", "Sale total (R)",
    ]
    ws.append(headers)

    for sale in sales:
        when = sale.created_at.strftime("%Y-%m-%d %H:%M") if isinstance(sale.created_at, datetime) else ""
        for it in sale.items:
            ws.append([
                sale.id, when, it.product_name, it.quantity,
                float(it.sale_price), round(it.subtotal, 2), float(sale.total_amount),
            ])

    # Auto column widths
    for col_idx, _ in enumerate(headers, start=1):
        max_len = 0
        for row in ws.iter_rows(min_col=col_idx, max_col=col_idx):
            cell = row[0]
            if cell.value is not None:
                max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 2, 40)

    bio = io.BytesIO()
    wb.save(bio)
    bio.seek(0)
    filename = f"sales_{filters.get('from') or ''}_{filters.get('to') or ''}.xlsx".replace("__", "_")
    filename = filename.replace("_.xlsx", ".xlsx")
    return bio, filename
