# supermarket_ai/helpers.py
"""
Derived inventory and sales metrics.

Everything here is plain arithmetic over in-memory records. Records can be
model instances or dicts (serialized rows), fields are looked up either way.
"""
from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

LOW_STOCK_THRESHOLD = 15
CRITICAL_STOCK_THRESHOLD = 5
EXPIRY_WARNING_DAYS = 10
EXPIRY_CRITICAL_DAYS = 3

NBSP = "\u00a0"
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _field(record, name, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def _to_float(v) -> float:
    if v is None:
        return 0.0
    if isinstance(v, (int, float, Decimal)):
        return float(v)
    s = str(v).strip().replace(",", ".")
    return float(s) if s else 0.0


def to_date(value) -> date | None:
    """Accepts date, datetime or ISO string (date or timestamp)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")


def to_datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------- formatting

def format_date(value) -> str:
    d = to_date(value)
    if d is None:
        return ""
    return f"{d.day} {_MONTHS[d.month - 1]} {d.year}"


def format_currency(amount) -> str:
    """South African rand, e.g. ``R 1 234,56`` (non-breaking spaces)."""
    value = Decimal(str(_to_float(amount))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, cents = f"{abs(value):.2f}".split(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}R{NBSP}{NBSP.join(groups)},{cents}"


# ---------------------------------------------------------------- expiry / stock

def days_until_expiry(expiry_date, today: date | None = None) -> int:
    """Days from today's midnight to the expiry date; negative once expired."""
    expiry = to_date(expiry_date)
    today = today or utcnow().date()
    return (expiry - today).days


def calculate_profit(cost_price, sale_price, quantity) -> float:
    return (_to_float(sale_price) - _to_float(cost_price)) * _to_float(quantity)


def profit_margin(price, cost_price) -> float:
    price = _to_float(price)
    cost = _to_float(cost_price)
    if not price or not cost:
        return 0.0
    return (price - cost) / price * 100


def expiring_products(products, today: date | None = None) -> list:
    result = []
    for p in products:
        days = days_until_expiry(_field(p, "expiry_date"), today)
        if 0 < days <= EXPIRY_WARNING_DAYS:
            result.append(p)
    return result


def expired_products(products, today: date | None = None) -> list:
    expired = [p for p in products if days_until_expiry(_field(p, "expiry_date"), today) <= 0]
    expired.sort(key=lambda p: days_until_expiry(_field(p, "expiry_date"), today))
    return expired


def low_stock_products(products) -> list:
    return [p for p in products if int(_field(p, "quantity") or 0) <= LOW_STOCK_THRESHOLD]


def stock_status(quantity) -> str:
    quantity = int(quantity or 0)
    if quantity <= CRITICAL_STOCK_THRESHOLD:
        return "critical"
    if quantity <= LOW_STOCK_THRESHOLD:
        return "low"
    return "ok"


def expiry_status(expiry_date, today: date | None = None) -> str:
    days = days_until_expiry(expiry_date, today)
    if days <= EXPIRY_CRITICAL_DAYS:
        return "critical"
    if days <= EXPIRY_WARNING_DAYS:
        return "warning"
    return "ok"


# ---------------------------------------------------------------- sales

def sale_total(sale) -> float:
    total = _field(sale, "total_amount")
    if total is not None:
        return _to_float(total)
    items = _field(sale, "items") or []
    return sum(_to_float(_field(i, "sale_price")) * int(_field(i, "quantity") or 0) for i in items)


def total_sales(sales, start: datetime | None = None, end: datetime | None = None) -> float:
    total = 0.0
    for sale in sales:
        created = to_datetime(_field(sale, "created_at"))
        if start and created < start:
            continue
        if end and created > end:
            continue
        total += sale_total(sale)
    return round(total, 2)


def percent_change(current, previous) -> int:
    current = _to_float(current)
    previous = _to_float(previous)
    if previous == 0:
        return 100
    return round_half_up((current - previous) / previous * 100)


def top_products(sale_items, n: int = 5) -> list[dict]:
    """Top-N products by units sold across sale items."""
    agg: dict = {}
    for item in sale_items:
        key = _field(item, "product_id") or _field(item, "product_name")
        if key is None:
            continue
        row = agg.setdefault(key, {
            "product_id": _field(item, "product_id"),
            "name": _field(item, "product_name"),
            "units": 0,
            "revenue": 0.0,
        })
        qty = int(_field(item, "quantity") or 0)
        row["units"] += qty
        row["revenue"] += _to_float(_field(item, "sale_price")) * qty
    rows = sorted(agg.values(), key=lambda r: (-r["units"], -r["revenue"], r["name"] or ""))
    for r in rows:
        r["revenue"] = round(r["revenue"], 2)
    return rows[:n]


def generate_id() -> str:
    return uuid.uuid4().hex[:12]
