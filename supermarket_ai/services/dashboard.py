# supermarket_ai/services/dashboard.py
from datetime import datetime, timedelta

from sqlalchemy.orm import selectinload

from supermarket_ai import helpers
from supermarket_ai.models import Product, Recommendation, Sale, SaleItem


def _month_ago(d: datetime) -> datetime:
    year, month = (d.year, d.month - 1) if d.month > 1 else (d.year - 1, 12)
    day = d.day
    while True:
        try:
            return d.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def compute_metrics(products, sales, recommendations, now: datetime | None = None) -> dict:
    """Dashboard numbers from already loaded rows."""
    now = now or helpers.utcnow()
    today_date = now.date()
    today = datetime(now.year, now.month, now.day)
    yesterday = today - timedelta(days=1)
    week_ago = today - timedelta(days=7)
    month_ago = _month_ago(today)
    # Previous-period windows end just before the current one starts
    tick = timedelta(microseconds=1)

    today_sales = helpers.total_sales(sales, today)
    yesterday_sales = helpers.total_sales(sales, yesterday, today - tick)
    week_sales = helpers.total_sales(sales, week_ago)
    prev_week_sales = helpers.total_sales(sales, week_ago - timedelta(days=7), week_ago - tick)
    month_sales = helpers.total_sales(sales, month_ago)

    expired = helpers.expired_products(products, today_date)
    total_loss = sum(float(p.cost_price or 0) * (p.quantity or 0) for p in expired)

    today_recs = [r for r in recommendations if r.created_at and r.created_at >= today]

    return {
        "total_products": len(products),
        "low_stock_products": len(helpers.low_stock_products(products)),
        "expiring_products": len(helpers.expiring_products(products, today_date)),
        "expired_products": len(expired),
        "total_loss": round(total_loss, 2),
        "total_loss_formatted": helpers.format_currency(total_loss),
        "today_sales": today_sales,
        "today_sales_formatted": helpers.format_currency(today_sales),
        "week_sales": week_sales,
        "week_sales_formatted": helpers.format_currency(week_sales),
        "month_sales": month_sales,
        "month_sales_formatted": helpers.format_currency(month_sales),
        "daily_change": helpers.percent_change(today_sales, yesterday_sales),
        "weekly_change": helpers.percent_change(week_sales, prev_week_sales),
        "today_recommendations": len(today_recs),
    }


def critical_products(products, today=None, limit: int = 3) -> list:
    """Low stock first, topped up with expiring products not already listed."""
    low = helpers.low_stock_products(products)[:limit]
    low_ids = {p.id for p in low}
    expiring = [p for p in helpers.expiring_products(products, today) if p.id not in low_ids]
    return low + expiring[: limit - len(low)]


def build_dashboard(now: datetime | None = None) -> dict:
    now = now or helpers.utcnow()
    today = now.date()

    products = Product.query.order_by(Product.created_at.desc()).all()
    sales = Sale.query.options(selectinload(Sale.items)).order_by(Sale.created_at.desc()).all()
    recommendations = Recommendation.query.order_by(Recommendation.created_at.desc()).all()
    sale_items = SaleItem.query.all()

    high_priority = [r for r in recommendations if r.priority == "high" and not r.is_read][:3]

    return {
        "metrics": compute_metrics(products, sales, recommendations, now),
        "expired_products": [p.to_dict(today) for p in helpers.expired_products(products, today)],
        "high_priority_recommendations": [r.to_dict() for r in high_priority],
        "critical_products": [p.to_dict(today) for p in critical_products(products, today)],
        "top_products": helpers.top_products(sale_items, n=5),
    }
