import logging

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from library_app.config import Config
from library_app.errors import LibraryError
from library_app.extensions import db, migrate, jwt, mail


def _register_error_handlers(app):
    @app.errorhandler(LibraryError)
    def handle_library_error(e):
        return jsonify({"success": False, "message": e.message, "error": e.code}), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        app.logger.exception(f"[db] unexpected persistence failure: {e}")
        return jsonify({"success": False, "message": "Server error.", "error": "server_error"}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"success": False, "message": e.description, "error": e.name.lower().replace(" ", "_")}), e.code


def _register_jwt_handlers(jwt_manager):
    def _unauthorized(message, code):
        return jsonify({"success": False, "message": message, "error": code}), 401

    @jwt_manager.unauthorized_loader
    def missing_token(reason):
        return _unauthorized(reason, "unauthorized")

    @jwt_manager.invalid_token_loader
    def invalid_token(reason):
        return _unauthorized(reason, "invalid_token")

    @jwt_manager.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return _unauthorized("Token has expired.", "token_expired")


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    # models must be imported before create_all / migrations see them
    from library_app import models  # noqa: F401

    from library_app.controllers.auth_controller import auth_bp
    from library_app.controllers.book_controller import book_bp
    from library_app.controllers.circulation_controller import circulation_bp
    from library_app.controllers.report_controller import report_bp
    from library_app.controllers.notification_controller import notif_bp
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(book_bp, url_prefix="/api")
    app.register_blueprint(circulation_bp, url_prefix="/api")
    app.register_blueprint(report_bp, url_prefix="/api/reports")
    app.register_blueprint(notif_bp, url_prefix="/api/admin")

    _register_error_handlers(app)
    _register_jwt_handlers(jwt)

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    from library_app.seed import register_cli
    register_cli(app)

    from library_app.tasks.scheduler import start_scheduler
    start_scheduler(app)

    return app
