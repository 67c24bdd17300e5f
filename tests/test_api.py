import io

import pytest

from billtrack.extensions import db
from billtrack.models import IncomingFile


def _login(client, email="alice@example.com", password="correct horse"):
    client.post("/auth/register", json={"email": email, "password": password})
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return resp.get_json()


def _upload(client, name="invoice.pdf", data=b"%PDF-1.4 api invoice"):
    return client.post(
        "/uploads",
        data={"file": (io.BytesIO(data), name)},
        content_type="multipart/form-data",
    )


@pytest.fixture
def logged_in(client):
    _login(client)
    return client


def test_login_required(client):
    resp = client.get("/uploads")

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Authentication required"


def test_register_login_logout(client):
    user = _login(client)
    assert user["email"] == "alice@example.com"
    assert client.get("/auth/me").get_json()["id"] == user["id"]

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_bad_credentials(client):
    _login(client)
    client.post("/auth/logout")

    resp = client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong"})

    assert resp.status_code == 401


def test_upload_and_duplicate(logged_in):
    first = _upload(logged_in)
    second = _upload(logged_in, name="again.pdf")

    assert first.status_code == 201
    assert first.get_json()["status"] == "NEW"
    assert second.status_code == 409
    assert second.get_json()["failure"] == "DUPLICATE_UPLOAD"


def test_upload_rejects_bad_type(logged_in):
    resp = _upload(logged_in, name="notes.txt")

    assert resp.status_code == 400
    assert resp.get_json()["failure"] == "INVALID_FILE"


def test_trigger_ocr_queues_task(logged_in, dispatcher):
    file_id = _upload(logged_in).get_json()["id"]

    resp = logged_in.post(f"/uploads/{file_id}/ocr")

    assert resp.status_code == 202
    body = resp.get_json()
    assert body["triggered"] is True
    assert body["file"]["status"] == "PROCESSING"
    assert dispatcher.calls == [file_id]


def test_trigger_ocr_without_engine(logged_in, engine):
    engine.available = False
    file_id = _upload(logged_in).get_json()["id"]

    resp = logged_in.post(f"/uploads/{file_id}/ocr")

    assert resp.status_code == 200
    assert resp.get_json()["triggered"] is False
    assert logged_in.get(f"/uploads/{file_id}").get_json()["status"] == "NEW"


def test_convert_approve_and_revert_guard(logged_in, catalog):
    file_id = _upload(logged_in).get_json()["id"]

    resp = logged_in.post(f"/uploads/{file_id}/convert/bill")
    assert resp.status_code == 201
    bill_id = resp.get_json()["id"]

    assert logged_in.get(f"/uploads/{file_id}").status_code == 404
    assert logged_in.post(f"/uploads/{file_id}/convert/receipt").status_code == 404

    resp = logged_in.post(
        f"/bills/{bill_id}/approve",
        json={
            "payment": {
                "service_provider_id": 7,
                "payment_method_id": 3,
                "amount": "120.50",
                "invoice_date": "2024-01-01",
                "payment_date": "2024-01-05",
            }
        },
    )
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["approved"] is True
    assert body["payment_id"] is not None
    assert body["entity"]["status"] == "APPROVED"

    resp = logged_in.post(f"/bills/{bill_id}/revert")
    assert resp.status_code == 409
    assert logged_in.get(f"/bills/{bill_id}").get_json()["can_revert"] is False

    payment = logged_in.get(f"/inbox/payments/{body['payment_id']}").get_json()
    assert payment["currency"] == "USD"
    assert payment["amount"] == "120.50"


def test_revert_receipt_restores_file(logged_in):
    file_id = _upload(logged_in).get_json()["id"]
    receipt_id = logged_in.post(f"/uploads/{file_id}/convert/receipt").get_json()["id"]

    resp = logged_in.post(f"/receipts/{receipt_id}/revert")

    assert resp.status_code == 200
    assert resp.get_json()["id"] == file_id
    assert logged_in.get(f"/uploads/{file_id}").get_json()["status"] == "NEW"
    assert logged_in.get(f"/receipts/{receipt_id}").status_code == 404


def test_other_user_sees_nothing(client):
    _login(client)
    file_id = _upload(client).get_json()["id"]
    client.post("/auth/logout")

    _login(client, email="bob@example.com")

    assert client.get(f"/uploads/{file_id}").status_code == 404
    assert client.post(f"/uploads/{file_id}/approve").status_code == 404
    assert client.delete(f"/uploads/{file_id}").status_code == 404
    assert client.get(f"/uploads/{file_id}/file").status_code == 404
    db.session.expire_all()
    assert db.session.get(IncomingFile, file_id) is not None


def test_receipt_endpoints(logged_in):
    resp = logged_in.post("/receipts", json={"merchant": "Corner shop", "amount": "4.20"})
    assert resp.status_code == 201
    receipt_id = resp.get_json()["id"]

    file_id = _upload(logged_in).get_json()["id"]
    bill_id = logged_in.post(f"/uploads/{file_id}/convert/bill").get_json()["id"]

    assert logged_in.put(f"/receipts/{receipt_id}/bill", json={"bill_id": bill_id}).status_code == 200
    assert logged_in.get(f"/receipts/{receipt_id}/bill").get_json()["bill"]["id"] == bill_id
    assert len(logged_in.get(f"/bills/{bill_id}/receipts").get_json()["receipts"]) == 1
    assert logged_in.delete(f"/receipts/{receipt_id}/bill").get_json()["bill_id"] is None

    resp = logged_in.post(f"/receipts/{receipt_id}/accept", json={})
    assert resp.get_json()["approved"] is True
    assert resp.get_json()["payment_id"] is None

    resp = logged_in.patch(f"/receipts/{receipt_id}", json={"amount": "oops"})
    assert resp.status_code == 400


def test_inbox_stats_and_listing(logged_in):
    _upload(logged_in, name="a.png", data=b"a")
    _upload(logged_in, name="b.png", data=b"b")

    listing = logged_in.get("/uploads?per_page=1&sort=filename&direction=asc").get_json()
    assert listing["total"] == 2
    assert listing["items"][0]["filename"] == "a.png"

    assert logged_in.get("/inbox/tabs").get_json() == {"new": 2, "approved": 0, "rejected": 0}
    assert logged_in.get("/inbox/stats").get_json()["incoming_files"]["NEW"] == 2
    assert logged_in.get("/uploads?status=bogus").status_code == 400


def test_download_file(logged_in):
    file_id = _upload(logged_in, data=b"%PDF-1.4 downloadable").get_json()["id"]

    resp = logged_in.get(f"/uploads/{file_id}/file")

    assert resp.status_code == 200
    assert resp.data == b"%PDF-1.4 downloadable"
    resp.close()


def test_catalog_endpoints(logged_in):
    resp = logged_in.post("/catalog/providers", json={"name": "City Water", "category": "utilities"})
    assert resp.status_code == 201
    assert logged_in.post("/catalog/providers", json={"name": "City Water"}).status_code == 400

    assert logged_in.post("/catalog/payment-methods", json={"name": "Cash", "type": "cash"}).status_code == 201
    methods = logged_in.get("/catalog/payment-methods").get_json()["payment_methods"]
    assert [m["type"] for m in methods] == ["CASH"]


def test_ocr_status_endpoint(logged_in):
    assert logged_in.get("/uploads/ocr/status").get_json() == {"available": True, "engines": ["fake"]}


def test_non_object_json_body_is_rejected(logged_in):
    resp = logged_in.post("/receipts", json=["merchant", "Corner shop"])

    assert resp.status_code == 400
    assert resp.get_json()["failure"] == "INVALID_INPUT"
