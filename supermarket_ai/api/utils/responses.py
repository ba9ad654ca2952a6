# supermarket_ai/api/utils/responses.py
from flask import current_app, jsonify

from supermarket_ai.extensions import db
from supermarket_ai.services import ServiceError


def ok(status: int = 200, **payload):
    return jsonify({"ok": True, **payload}), status


def fail(message: str, status: int = 400):
    return jsonify({"ok": False, "error": message}), status


def handle_error(e: Exception, prefix: str | None = None):
    """Roll back and turn an exception into the error toast payload."""
    db.session.rollback()
    if isinstance(e, ServiceError):
        current_app.logger.warning("%s: %s", prefix or "Request failed", e.message)
        message, status = e.message, e.status
    else:
        current_app.logger.exception(prefix or "Request failed")
        message, status = str(e) or e.__class__.__name__, 500
    return fail(f"{prefix}: {message}" if prefix else message, status)


def request_data(request) -> dict:
    """Form fields for multipart/form posts, JSON body otherwise."""
    if request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}
