# supermarket_ai/services/recommendations.py
from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import func

from supermarket_ai import helpers
from supermarket_ai.extensions import db
from supermarket_ai.models import Product, Recommendation, Sale, SaleItem
from supermarket_ai.models.recommendation import PRIORITIES, RECOMMENDATION_TYPES
from supermarket_ai.services import ServiceError

RESTOCK_ACTION = "Consider ordering more units to maintain optimal inventory levels"
RAISE_PRICE_ACTION = "Consider increasing price by 5-10% based on market trends"
PROMO_PRICE_ACTION = "Consider promotional pricing to boost sales volume"

LOW_MARGIN_PCT = 10
HIGH_MARGIN_PCT = 40
STALE_SALES_DAYS = 30


def _stock_priority(quantity: int) -> str:
    return "high" if quantity <= helpers.CRITICAL_STOCK_THRESHOLD else "medium"


def discount_percent(days: int) -> int:
    if days <= 3:
        return 50
    if days <= 7:
        return 30
    return 15


def add_restock_recommendation(product: Product, quantity: int, initial: bool = False) -> Recommendation:
    """Queue a restock recommendation on the session; the caller commits."""
    if initial:
        message = f"Low initial stock level ({quantity} units)"
    else:
        message = f"{product.name} is low in stock ({quantity} remaining)"
    rec = Recommendation(
        type="restock",
        product=product,
        message=message,
        suggested_action=RESTOCK_ACTION,
        priority=_stock_priority(quantity),
        is_read=False,
    )
    db.session.add(rec)
    return rec


def list_recommendations(type_: str | None = None, priority: str | None = None, show_read: bool = True):
    q = Recommendation.query
    if type_ and type_ != "all":
        if type_ not in RECOMMENDATION_TYPES:
            raise ServiceError(f"Unknown recommendation type: {type_}")
        q = q.filter(Recommendation.type == type_)
    if priority and priority != "all":
        if priority not in PRIORITIES:
            raise ServiceError(f"Unknown priority: {priority}")
        q = q.filter(Recommendation.priority == priority)
    if not show_read:
        q = q.filter(Recommendation.is_read.is_(False))
    return q.order_by(Recommendation.created_at.desc()).all()


def mark_read(recommendation_id: str) -> Recommendation:
    rec = db.session.get(Recommendation, recommendation_id)
    if rec is None:
        raise ServiceError("Recommendation not found", 404)
    rec.is_read = True
    db.session.commit()
    return rec


def mark_all_read() -> int:
    updated = (
        Recommendation.query
        .filter(Recommendation.is_read.is_(False))
        .update({Recommendation.is_read: True}, synchronize_session="fetch")
    )
    db.session.commit()
    return updated


def _open_types_by_product() -> dict[str, set[str]]:
    open_recs: dict[str, set[str]] = {}
    rows = (
        db.session.query(Recommendation.product_id, Recommendation.type)
        .filter(Recommendation.is_read.is_(False))
        .all()
    )
    for product_id, type_ in rows:
        open_recs.setdefault(product_id, set()).add(type_)
    return open_recs


def _last_sale_dates() -> dict[str, object]:
    rows = (
        db.session.query(SaleItem.product_id, func.max(Sale.created_at))
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(SaleItem.product_id.isnot(None))
        .group_by(SaleItem.product_id)
        .all()
    )
    return {pid: last for pid, last in rows}


def build_recommendations(product: Product, today=None, last_sale=None) -> list[dict]:
    """Recommendation payloads for one product (not persisted)."""
    today = today or helpers.utcnow().date()
    out = []

    days = helpers.days_until_expiry(product.expiry_date, today)
    if 0 < days <= helpers.EXPIRY_WARNING_DAYS:
        out.append({
            "type": "discount",
            "message": f"{product.name} expires in {days} days",
            "suggested_action": f"Apply {discount_percent(days)}% discount to boost sales before expiry",
            "priority": "high" if days <= helpers.EXPIRY_CRITICAL_DAYS else "medium",
        })

    if (product.quantity or 0) <= helpers.LOW_STOCK_THRESHOLD:
        out.append({
            "type": "restock",
            "message": f"{product.name} is low in stock ({product.quantity} remaining)",
            "suggested_action": RESTOCK_ACTION,
            "priority": _stock_priority(product.quantity or 0),
        })

    margin = helpers.profit_margin(product.price, product.cost_price)
    last = last_sale or product.last_sale_date
    stale = last is None or (today - helpers.to_date(last)) > timedelta(days=STALE_SALES_DAYS)
    priced = float(product.price or 0) > 0 and float(product.cost_price or 0) > 0
    if priced and margin < LOW_MARGIN_PCT:
        action = RAISE_PRICE_ACTION
    elif margin >= HIGH_MARGIN_PCT and stale:
        action = PROMO_PRICE_ACTION
    else:
        action = None
    if action:
        out.append({
            "type": "pricing",
            "message": f"Sales analysis for {product.name}",
            "suggested_action": action,
            "priority": "low",
        })
    return out


def generate_recommendations(today=None) -> list[Recommendation]:
    """Scan all products and insert recommendations that are not already open."""
    open_types = _open_types_by_product()
    last_sales = _last_sale_dates()
    created = []
    for product in Product.query.order_by(Product.name.asc()).all():
        existing = open_types.get(product.id, set())
        for payload in build_recommendations(product, today, last_sales.get(product.id)):
            if payload["type"] in existing:
                continue
            rec = Recommendation(product=product, is_read=False, **payload)
            db.session.add(rec)
            created.append(rec)
    db.session.commit()
    current_app.logger.info("Generated %d recommendations", len(created))
    return created
