"""
Entry point for a standalone Celery worker:

    celery -A billtrack.worker worker --loglevel=info

Building the Flask app here configures the broker and installs the
app-context task base before any task runs.
"""
from .app import create_app
from .celery_worker import process_ocr  # noqa: F401
from .extensions import celery_app

flask_app = create_app()
celery = celery_app
