# supermarket_ai/api/routes/recommendation_routes.py
from flask import Blueprint, request

from supermarket_ai.api.utils.responses import handle_error, ok
from supermarket_ai.services import recommendations as recs

api_recommendations = Blueprint("api_recommendations", __name__, url_prefix="/api/recommendations")


def _flag(name: str, default: bool) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@api_recommendations.get("")
def list_recommendations():
    try:
        items = recs.list_recommendations(
            type_=request.args.get("type"),
            priority=request.args.get("priority"),
            show_read=_flag("show_read", True),
        )
    except Exception as e:
        return handle_error(e, "Error fetching recommendations")
    return ok(
        recommendations=[r.to_dict() for r in items],
        unread=sum(1 for r in items if not r.is_read),
    )


@api_recommendations.post("/<recommendation_id>/read")
def mark_read(recommendation_id: str):
    try:
        rec = recs.mark_read(recommendation_id)
    except Exception as e:
        return handle_error(e, "Error updating recommendation")
    return ok(recommendation=rec.to_dict())


@api_recommendations.post("/read-all")
def mark_all_read():
    try:
        updated = recs.mark_all_read()
    except Exception as e:
        return handle_error(e, "Error updating recommendations")
    return ok(message="All recommendations marked as read", updated=updated)


@api_recommendations.post("/generate")
def generate():
    try:
        created = recs.generate_recommendations()
    except Exception as e:
        return handle_error(e, "Error generating recommendations")
    return ok(201 if created else 200, created=[r.to_dict() for r in created])
