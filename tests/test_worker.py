import importlib
import sys

import billtrack.app
from billtrack.extensions import celery_app


def test_worker_module_builds_the_app(app, monkeypatch):
    monkeypatch.setattr(billtrack.app, "create_app", lambda: app)
    monkeypatch.delitem(sys.modules, "billtrack.worker", raising=False)

    worker = importlib.import_module("billtrack.worker")

    assert worker.flask_app is app
    assert worker.celery is celery_app
    assert "tasks.process_ocr" in celery_app.tasks
