# supermarket_ai/app.py
import logging
import os

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from supermarket_ai.config import Config

# Show INFO logs even outside the werkzeug access log
logging.basicConfig(level=logging.INFO)

# Extensions
from supermarket_ai.extensions import db, login_manager, bcrypt, migrate, cors, init_mail

# Blueprints
from supermarket_ai.auth import auth_bp
from supermarket_ai.api.routes.product_routes import api_products
from supermarket_ai.api.routes.media_routes import api_media
from supermarket_ai.api.routes.sale_routes import api_sales
from supermarket_ai.api.routes.recommendation_routes import api_recommendations
from supermarket_ai.api.routes.notification_routes import api_notifications
from supermarket_ai.api.routes.dashboard_routes import api_dashboard
from supermarket_ai.api.routes.assistant_routes import api_assistant
from supermarket_ai.api.utils.responses import fail
from supermarket_ai.services.assistant import init_assistant
from supermarket_ai.services.notifications import init_notifications
from supermarket_ai.cli import register_cli
from supermarket_ai import models as _models  # noqa: F401


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    bcrypt.init_app(app)
    init_mail(app)
    init_notifications(app)
    init_assistant(app)

    cors.init_app(
        app,
        resources={
            r"/api/*": {
                "origins": app.config.get("CORS_ORIGINS") or [],
                "supports_credentials": True,
            }
        },
    )

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(api_products)
    app.register_blueprint(api_media)
    app.register_blueprint(api_sales)
    app.register_blueprint(api_recommendations)
    app.register_blueprint(api_notifications)
    app.register_blueprint(api_dashboard)
    app.register_blueprint(api_assistant)

    register_cli(app)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        if not request.path.startswith("/api/"):
            return e
        if e.code == 413:
            return fail("File size must be less than 5MB", 413)
        return fail(e.description or e.name, e.code or 500)

    @app.get("/api/health")
    def health():
        return {"ok": True}, 200

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    return app
