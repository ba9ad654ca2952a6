# supermarket_ai/services/notifications.py
"""
Transient notifications fed by database changes.

ORM events on products, sales and recommendations are buffered on the
session and published once the transaction commits, so a rolled back
checkout never produces a "New sale recorded" notification.
"""
from __future__ import annotations

import threading
from collections import deque

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session

from supermarket_ai import helpers
from supermarket_ai.models import Product, Recommendation, Sale

NOTIFICATION_TYPES = ("info", "warning", "error", "success")

_FEED_KEY = "change_feed"


class NotificationCenter:
    def __init__(self, limit: int = 100):
        self._items: deque = deque(maxlen=limit)
        self._lock = threading.Lock()

    def push(self, type_: str, message: str) -> dict:
        if type_ not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type_}")
        notification = {
            "id": helpers.generate_id(),
            "type": type_,
            "message": message,
            "timestamp": helpers.utcnow().isoformat(),
            "is_read": False,
        }
        with self._lock:
            self._items.appendleft(notification)
        return notification

    def all(self) -> list[dict]:
        with self._lock:
            return [dict(n) for n in self._items]

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._items if not n["is_read"])

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            for n in self._items:
                if n["id"] == notification_id:
                    n["is_read"] = True
                    return True
        return False

    def mark_all_read(self) -> int:
        changed = 0
        with self._lock:
            for n in self._items:
                if not n["is_read"]:
                    n["is_read"] = True
                    changed += 1
        return changed

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


def init_notifications(app) -> NotificationCenter:
    center = NotificationCenter(limit=app.config.get("NOTIFICATION_LIMIT", 100))
    app.extensions["notifications"] = center
    return center


def get_center() -> NotificationCenter:
    return current_app.extensions["notifications"]


def low_stock_notification(name: str, quantity: int):
    """(type, message) for a product at or below the low stock line, else None."""
    if quantity is None or quantity > helpers.LOW_STOCK_THRESHOLD:
        return None
    type_ = "error" if quantity <= helpers.CRITICAL_STOCK_THRESHOLD else "warning"
    return type_, f"{name} is running low ({quantity} units remaining)"


def scan_products(products, today=None) -> list[dict]:
    """Push expiry (<= 3 days) and critical stock (<= 5) alerts for the given products."""
    center = get_center()
    created = []
    for p in products:
        days = helpers.days_until_expiry(p.expiry_date, today)
        if 0 < days <= helpers.EXPIRY_CRITICAL_DAYS:
            created.append(center.push("warning", f"{p.name} expires in {days} days"))
        elif days <= 0:
            created.append(center.push("error", f"{p.name} has expired"))
        if (p.quantity or 0) <= helpers.CRITICAL_STOCK_THRESHOLD:
            created.append(center.push("error", f"{p.name} is critically low ({p.quantity} remaining)"))
    return created


# ---------------------------------------------------------------- change feed

def _buffer(target, entry) -> None:
    session = Session.object_session(target)
    if session is None:
        return
    session.info.setdefault(_FEED_KEY, []).append(entry)


@event.listens_for(Product, "after_insert")
@event.listens_for(Product, "after_update")
def _product_changed(mapper, connection, target):
    alert = low_stock_notification(target.name, target.quantity)
    if alert:
        _buffer(target, alert)


@event.listens_for(Sale, "after_insert")
def _sale_inserted(mapper, connection, target):
    _buffer(target, ("success", "New sale recorded successfully"))


@event.listens_for(Recommendation, "after_insert")
def _recommendation_inserted(mapper, connection, target):
    type_ = "error" if target.priority == "high" else "warning"
    _buffer(target, (type_, target.message))


@event.listens_for(Session, "after_commit")
def _publish(session):
    pending = session.info.pop(_FEED_KEY, None)
    if not pending or not has_app_context():
        return
    center = current_app.extensions.get("notifications")
    if center is None:
        return
    for type_, message in pending:
        center.push(type_, message)


@event.listens_for(Session, "after_rollback")
def _discard(session):
    session.info.pop(_FEED_KEY, None)
