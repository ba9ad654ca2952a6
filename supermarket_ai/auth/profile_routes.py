# supermarket_ai/auth/profile_routes.py
from flask import request
from flask_login import current_user, login_required

from supermarket_ai.api.utils.responses import handle_error, ok
from supermarket_ai.extensions import db
from supermarket_ai.helpers import utcnow

from .login_routes import auth_bp

EDITABLE_FIELDS = (
    "full_name", "avatar_url", "phone", "address",
    "city", "postal_code", "country", "bio",
)


@auth_bp.get("/profile")
@login_required
def get_profile():
    return ok(profile=current_user.to_dict())


@auth_bp.put("/profile")
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    try:
        for field in EDITABLE_FIELDS:
            if field in data:
                value = (str(data[field]).strip() if data[field] is not None else "") or None
                setattr(current_user, field, value)
        if not current_user.country:
            current_user.country = "South Africa"
        current_user.updated_at = utcnow()
        db.session.commit()
    except Exception as e:
        return handle_error(e, "Error updating profile")
    return ok(message="Profile updated successfully!", profile=current_user.to_dict())
