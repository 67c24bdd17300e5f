import os

import pytesseract
from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import get_config
from .extensions import db, migrate, login_manager, csrf, limiter, celery_app
from .ocr import OcrGateway, TesseractEngine
from .services.payloads import InvalidInput
from .storage import LocalStorage


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(get_config(config_name))

    # Set pytesseract command from config
    if app.config.get("TESSERACT_CMD"):
        pytesseract.pytesseract.tesseract_cmd = app.config["TESSERACT_CMD"]
    elif app.config.get("OCR_ENABLED"):
        app.logger.warning(
            "Tesseract command not found. OCR will be unavailable. "
            "Install Tesseract and set TESSERACT_CMD in your environment."
        )

    # Configure Celery
    celery_app.conf.update(
        broker_url=app.config["REDIS_URL"],
        result_backend=app.config["REDIS_URL"],
    )

    # Add Flask app context to Celery tasks
    class ContextTask(celery_app.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app.Task = ContextTask

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(error="Authentication required"), 401

    upload_root = app.config["UPLOAD_FOLDER"]
    if not os.path.isabs(upload_root):
        upload_root = os.path.join(app.instance_path, upload_root)
    app.extensions["billtrack.storage"] = LocalStorage(upload_root)
    app.extensions["billtrack.ocr"] = OcrGateway(
        [
            TesseractEngine(
                cmd=app.config.get("TESSERACT_CMD"),
                lang=app.config["TESS_LANG"],
                timeout=app.config["OCR_TIMEOUT"],
                poppler_path=app.config.get("POPPLER_PATH"),
            )
        ],
        enabled=app.config["OCR_ENABLED"],
    )

    # Ensure models are imported so Alembic sees them during 'flask db migrate'
    with app.app_context():
        from . import models  # noqa: F401

    # Blueprints
    from .blueprints.auth.routes import auth_bp
    from .blueprints.uploads.routes import uploads_bp
    from .blueprints.bills.routes import bills_bp
    from .blueprints.receipts.routes import receipts_bp
    from .blueprints.inbox.routes import inbox_bp
    from .blueprints.catalog.routes import catalog_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(bills_bp)
    app.register_blueprint(receipts_bp)
    app.register_blueprint(inbox_bp)
    app.register_blueprint(catalog_bp)

    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app


def register_error_handlers(app):
    @app.errorhandler(InvalidInput)
    def handle_invalid_input(e):
        return jsonify(error=str(e), failure="INVALID_INPUT"), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify(error=e.description or e.name), e.code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        app.logger.exception("Database error: %s", e)
        return jsonify(error="Internal server error"), 500

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception("Unhandled error: %s", e)
        return jsonify(error="Internal server error"), 500


# For flask run:
# export FLASK_APP="billtrack.app:create_app"
# flask run --debug
