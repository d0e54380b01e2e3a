from typing import Mapping, Optional

from flask import Flask, jsonify, request
from flask_login import LoginManager
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

import config
from errors import SetlistError
from logging_config import get_logger, setup_logging
from models import db, User

log = get_logger("app")


def _base_config() -> dict:
    return {
        "SECRET_KEY": config.FLASK_SECRET_KEY,
        "SQLALCHEMY_DATABASE_URI": config.SQLALCHEMY_DATABASE_URI,
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "DEFAULT_PAGE_LIMIT": config.DEFAULT_PAGE_LIMIT,
        "MAX_PAGE_LIMIT": config.MAX_PAGE_LIMIT,
        "LOG_LEVEL": config.LOG_LEVEL,
    }


def create_app(overrides: Optional[Mapping] = None) -> Flask:
    """Build the API app; ``overrides`` are applied last (tests use this)."""
    app = Flask(__name__)
    app.config.update(_base_config())
    if overrides:
        app.config.update(overrides)
    app.config["SQLALCHEMY_DATABASE_URI"] = config.normalize_database_url(
        app.config["SQLALCHEMY_DATABASE_URI"]
    )
    app.url_map.strict_slashes = False

    setup_logging(app.config["LOG_LEVEL"])
    db.init_app(app)

    login_manager = LoginManager(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"ok": False, "error": "Login required.", "kind": "Unauthorized"}), 401

    from routes.auth import auth_bp
    from routes.setlists import setlists_bp
    from routes.songs import songs_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(setlists_bp)
    app.register_blueprint(songs_bp)

    _register_error_handlers(app)

    @app.get("/healthz")
    def healthz():
        # quick DB ping; never crash health
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = True
        except Exception:
            db.session.rollback()
            db_ok = False
        return (f"ok | db={ 'up' if db_ok else 'down' }", 200)

    ensure_schema(app)
    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SetlistError)
    def handle_setlist_error(exc: SetlistError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.path, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"ok": False, "error": exc.description, "kind": exc.name}), exc.code


def ensure_schema(app: Flask) -> None:
    """Create any missing tables, idempotently."""
    with app.app_context():
        db.create_all()
    log.info("Schema ready on %s", app.config["SQLALCHEMY_DATABASE_URI"].split("://", 1)[0])


if __name__ == "__main__":
    create_app().run(debug=True, port=5055)
