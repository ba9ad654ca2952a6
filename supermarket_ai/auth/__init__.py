# supermarket_ai/auth/__init__.py
from .login_routes import auth_bp
from . import profile_routes  # noqa: F401  (attaches the profile views to auth_bp)

__all__ = ["auth_bp"]
