# supermarket_ai/api/routes/notification_routes.py
from flask import Blueprint

from supermarket_ai.api.utils.responses import fail, handle_error, ok
from supermarket_ai.models import Product
from supermarket_ai.services import notifications

api_notifications = Blueprint("api_notifications", __name__, url_prefix="/api/notifications")


@api_notifications.get("")
def list_notifications():
    center = notifications.get_center()
    return ok(notifications=center.all(), unread=center.unread_count())


@api_notifications.post("/<notification_id>/read")
def mark_read(notification_id: str):
    center = notifications.get_center()
    if not center.mark_read(notification_id):
        return fail("Notification not found", 404)
    return ok(unread=center.unread_count())


@api_notifications.post("/read-all")
def mark_all_read():
    center = notifications.get_center()
    center.mark_all_read()
    return ok(unread=0)


@api_notifications.post("/scan")
def scan():
    try:
        created = notifications.scan_products(Product.query.all())
    except Exception as e:
        return handle_error(e, "Error scanning products")
    return ok(created=created, unread=notifications.get_center().unread_count())
