# supermarket_ai/extensions.py
from __future__ import annotations

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from flask_cors import CORS
from flask_mail import Mail

# Keep extension instances in one place to avoid circular imports
db = SQLAlchemy()
login_manager = LoginManager()
bcrypt = Bcrypt()
migrate = Migrate()
cors = CORS()
mail = Mail()


@login_manager.user_loader
def load_user(user_id):
    # Lazy import to avoid circular dependency when loading the model
    from supermarket_ai.models.profile import Profile
    return db.session.get(Profile, str(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"ok": False, "error": "User not authenticated"}), 401


def init_mail(app):
    """Flask-Mail for the sales report; SSL wins when both SSL and TLS are set."""
    cfg = app.config
    if cfg.get("MAIL_USE_SSL") and cfg.get("MAIL_USE_TLS"):
        cfg["MAIL_USE_TLS"] = False
    if not cfg.get("MAIL_DEFAULT_SENDER"):
        cfg["MAIL_DEFAULT_SENDER"] = cfg.get("MAIL_USERNAME")
    mail.init_app(app)
