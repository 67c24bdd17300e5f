from datetime import date
from decimal import Decimal

import pytest
from billtrack.app import create_app
from billtrack.extensions import db
from billtrack.models import User, ServiceProvider, PaymentMethod, PaymentMethodType
from billtrack.ocr import OcrEngine, OcrGateway, OcrResult
from billtrack.services import build_services
from billtrack.storage import LocalStorage


class FakeEngine(OcrEngine):
    """OCR engine returning a canned result for every file."""

    name = "fake"

    def __init__(self):
        self.available = True
        self.calls = []
        self.result = OcrResult.succeeded(
            provider="Acme",
            amount=Decimal("120.50"),
            date=date(2024, 1, 1),
            currency="USD",
            raw={"text": "Acme\nTotal 120.50"},
        )

    def is_available(self):
        return self.available

    def extract(self, path):
        self.calls.append(path)
        return self.result


class RecordingDispatcher:
    """Stands in for the Celery queue: remembers file ids and hands out task ids."""

    def __init__(self):
        self.calls = []
        self.error = None

    def __call__(self, file_id):
        if self.error is not None:
            raise self.error
        self.calls.append(file_id)
        return f"task-{len(self.calls)}"


@pytest.fixture(scope='session')
def app():
    """Session-wide test `Flask` application."""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def clean_db(app):
    """Ensures the database is clean before each test runs."""
    with app.app_context():
        db.session.rollback()
        # A fast way to clear all data from all tables
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()


@pytest.fixture(scope='function')
def db_session(app, clean_db):
    """Yields a database session for a test, wrapped in an app context."""
    with app.app_context():
        yield db.session


@pytest.fixture
def storage(app, tmp_path):
    storage = LocalStorage(str(tmp_path / "uploads"))
    app.extensions["billtrack.storage"] = storage
    return storage


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def gateway(app, engine):
    gateway = OcrGateway([engine])
    app.extensions["billtrack.ocr"] = gateway
    return gateway


@pytest.fixture
def dispatcher(app):
    dispatcher = RecordingDispatcher()
    app.extensions["billtrack.dispatch_ocr"] = dispatcher
    return dispatcher


@pytest.fixture
def services(app, db_session, storage, gateway, dispatcher):
    return build_services(db_session, storage, gateway, dispatch_ocr=dispatcher, config=app.config)


def _user(session, email):
    user = User(email=email, password_hash="not-a-real-hash")
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def alice(db_session):
    return _user(db_session, "alice@example.com")


@pytest.fixture
def bob(db_session):
    return _user(db_session, "bob@example.com")


@pytest.fixture
def catalog(db_session):
    """Service provider 7 and payment method 3, as a payment form would reference them."""
    provider = ServiceProvider(id=7, name="Acme Utilities", category="utilities")
    method = PaymentMethod(id=3, name="Visa", type=PaymentMethodType.CARD)
    db_session.add_all([provider, method])
    db_session.commit()
    return provider, method


@pytest.fixture
def payment_payload(catalog):
    return {
        "service_provider_id": 7,
        "payment_method_id": 3,
        "amount": "120.50",
        "currency": "USD",
        "invoice_date": "2024-01-01",
        "payment_date": "2024-01-05",
    }


@pytest.fixture
def uploaded(services, alice):
    """An invoice uploaded by alice, still NEW."""
    outcome = services.files.upload(alice.id, "invoice.pdf", b"%PDF-1.4 invoice bytes")
    assert outcome.ok
    return outcome.value


@pytest.fixture
def processed(services, alice, uploaded):
    """alice's invoice after a successful OCR run."""
    assert services.files.trigger_ocr(uploaded.id, alice.id).ok
    assert services.files.run_ocr(uploaded.id).ok
    return uploaded


@pytest.fixture
def client(app, clean_db, storage, gateway, dispatcher):
    """A test client for the app."""
    return app.test_client()
