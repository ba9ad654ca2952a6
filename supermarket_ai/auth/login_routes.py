# supermarket_ai/auth/login_routes.py
from flask import Blueprint, current_app, request
from flask_login import current_user, login_required, login_user, logout_user

from supermarket_ai.api.utils.responses import fail, ok
from supermarket_ai.models import Profile

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or request.form.to_dict()
    email = (data.get("email") or "").strip().lower()
    password = (data.get("password") or "").strip()
    if not email or not password:
        return fail("Email and password are required")

    user = Profile.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        current_app.logger.info("Failed login for %s", email)
        return fail("Invalid login credentials", 401)

    login_user(user, remember=bool(data.get("remember")))
    return ok(message="Signed in successfully", user=user.to_dict())


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return ok(message="Signed out")


@auth_bp.get("/me")
@login_required
def me():
    return ok(user=current_user.to_dict())
