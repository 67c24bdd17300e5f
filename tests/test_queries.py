from billtrack.models import OcrAttemptStatus
from billtrack.services import Failure


def _upload(services, user, n):
    return [services.files.upload(user.id, f"scan-{i}.png", f"bytes-{i}".encode()).value for i in range(n)]


def test_list_files_paginates_and_caps_page_size(services, alice, app):
    _upload(services, alice, 5)

    page = services.inbox.list_files(alice.id, page=2, per_page=2, sort="filename", direction="asc")

    assert page.total == 5
    assert page.pages == 3
    assert [f.filename for f in page.items] == ["scan-2.png", "scan-3.png"]

    capped = services.inbox.list_files(alice.id, per_page=10_000)
    assert capped.per_page == app.config["MAX_PAGE_SIZE"]


def test_unknown_sort_key_falls_back_to_newest_first(services, alice):
    files = _upload(services, alice, 3)

    page = services.inbox.list_files(alice.id, sort="password_hash")

    assert [f.id for f in page.items] == [f.id for f in reversed(files)]


def test_list_files_filters_status_and_owner(services, alice, bob):
    files = _upload(services, alice, 3)
    _upload(services, bob, 2)
    services.files.reject(files[0].id, alice.id)

    assert services.inbox.list_files(alice.id).total == 3
    assert services.inbox.list_files(alice.id, status="rejected").total == 1
    assert services.inbox.list_files(bob.id).total == 2


def test_list_receipts_filters(services, alice, processed):
    bill = services.conversion.convert_to_bill(processed.id, alice.id).value
    services.receipts.create(alice.id, {"merchant": "A"}, bill_id=bill.id)
    services.receipts.create(alice.id, {"merchant": "B"})

    assert services.inbox.list_receipts(alice.id).total == 2
    assert [r.merchant for r in services.inbox.list_receipts(alice.id, bill_id=bill.id).items] == ["A"]
    assert [r.merchant for r in services.inbox.list_receipts(alice.id, standalone=True).items] == ["B"]


def test_statistics_include_zero_counts(services, alice, processed, payment_payload):
    bill = services.conversion.convert_to_bill(processed.id, alice.id).value
    services.bills.approve(bill.id, alice.id, payment=payment_payload)
    services.receipts.create(alice.id, {"merchant": "Loose"})
    _upload(services, alice, 1)

    stats = services.inbox.statistics(alice.id)

    assert stats["incoming_files"] == {
        "NEW": 1,
        "PROCESSING": 0,
        "DONE": 0,
        "FAILED": 0,
        "APPROVED": 0,
        "REJECTED": 0,
    }
    assert stats["bills"]["APPROVED"] == 1
    assert stats["bills"]["NEW"] == 0
    assert stats["receipts"]["NEW"] == 1
    assert stats["receipt_association"] == {"associated": 0, "standalone": 1, "total": 1}
    assert stats["payments"] == {"count": 1, "totals": {"USD": "120.50"}}


def test_tab_counts(services, alice, processed):
    bill = services.conversion.convert_to_bill(processed.id, alice.id).value
    receipt = services.receipts.create(alice.id, {}).value
    services.receipts.reject(receipt.id, alice.id)
    _upload(services, alice, 2)

    assert services.inbox.tab_counts(alice.id) == {"new": 3, "approved": 0, "rejected": 1}
    services.bills.approve(bill.id, alice.id)
    assert services.inbox.tab_counts(alice.id) == {"new": 2, "approved": 1, "rejected": 1}


def test_ocr_history_follows_conversion(services, alice, bob, processed):
    bill = services.conversion.convert_to_bill(processed.id, alice.id).value

    attempts = services.inbox.ocr_history(alice.id, kind="bill", entity_id=bill.id).value

    assert len(attempts) == 1
    assert attempts[0].status == OcrAttemptStatus.SUCCESS
    assert services.inbox.ocr_history(alice.id, file_id=processed.id).failure == Failure.NOT_FOUND
    assert services.inbox.ocr_history(bob.id, kind="bill", entity_id=bill.id).failure == Failure.NOT_FOUND


def test_ocr_status(services, engine):
    assert services.inbox.ocr_status() == {"available": True, "engines": ["fake"]}
    engine.available = False
    assert services.inbox.ocr_status() == {"available": False, "engines": []}


def test_payment_listing(services, alice, bob, processed, payment_payload):
    bill = services.conversion.convert_to_bill(processed.id, alice.id).value
    services.bills.approve(bill.id, alice.id, payment=payment_payload)

    assert services.inbox.list_payments(alice.id).total == 1
    assert services.inbox.list_payments(bob.id).total == 0
