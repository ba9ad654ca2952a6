# supermarket_ai/api/routes/dashboard_routes.py
from flask import Blueprint

from supermarket_ai.api.utils.responses import handle_error, ok
from supermarket_ai.services.dashboard import build_dashboard

api_dashboard = Blueprint("api_dashboard", __name__, url_prefix="/api/dashboard")


@api_dashboard.get("")
def dashboard():
    try:
        data = build_dashboard()
    except Exception as e:
        return handle_error(e, "Error loading dashboard")
    return ok(**data)
