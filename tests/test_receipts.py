from datetime import date
from decimal import Decimal

import pytest

from billtrack.models import IncomingFile, Payment, ItemStatus, DocumentKind
from billtrack.services import Failure


@pytest.fixture
def bill(services, alice, processed):
    return services.conversion.convert_to_bill(processed.id, alice.id).value


@pytest.fixture
def receipt(services, alice):
    return services.receipts.create(
        alice.id,
        {"merchant": "Corner shop", "amount": "12.40", "currency": "eur", "payment_date": "2024-03-01"},
    ).value


def test_create_direct_receipt(receipt):
    assert receipt.status == ItemStatus.NEW
    assert receipt.amount == Decimal("12.40")
    assert receipt.currency == "EUR"
    assert receipt.payment_date == date(2024, 3, 1)
    assert receipt.source_file_id is None
    assert not receipt.has_file


def test_create_with_invalid_fields(services, alice):
    outcome = services.receipts.create(alice.id, {"amount": "twelve"})

    assert outcome.failure == Failure.INVALID_INPUT


def test_create_against_foreign_bill(services, bob, bill):
    assert services.receipts.create(bob.id, {}, bill_id=bill.id).failure == Failure.NOT_FOUND


def test_associate_and_remove(services, alice, bill, receipt):
    outcome = services.receipts.associate(receipt.id, bill.id, alice.id)

    assert outcome.ok
    assert receipt.bill_id == bill.id
    assert services.receipts.associated_bill(receipt.id, alice.id).value.id == bill.id

    assert services.receipts.remove_from_bill(receipt.id, alice.id).ok
    assert receipt.bill_id is None
    assert services.receipts.associated_bill(receipt.id, alice.id).value is None


def test_association_only_within_one_user(services, alice, bob, bill):
    bobs = services.receipts.create(bob.id, {"merchant": "Bob's"}).value

    assert services.receipts.associate(bobs.id, bill.id, bob.id).failure == Failure.NOT_FOUND
    assert services.receipts.associate(bobs.id, bill.id, alice.id).failure == Failure.NOT_FOUND
    assert bobs.bill_id is None


def test_cannot_associate_with_rejected_bill(services, alice, bill, receipt):
    services.bills.reject(bill.id, alice.id)

    assert services.receipts.associate(receipt.id, bill.id, alice.id).failure == Failure.INVALID_STATE
    assert services.receipts.available_bills(alice.id) == []


def test_available_bills(services, alice, bill):
    assert [b.id for b in services.receipts.available_bills(alice.id)] == [bill.id]


def test_accept_as_payment(services, alice, bill, receipt, payment_payload, db_session):
    result = services.receipts.accept_as_payment(
        receipt.id, alice.id, payment=payment_payload, bill_id=bill.id
    )

    assert result.approved
    assert receipt.status == ItemStatus.APPROVED
    assert receipt.accepted_at is not None
    assert receipt.bill_id == bill.id
    payment = db_session.get(Payment, result.payment_id)
    assert payment.source_type == DocumentKind.RECEIPT
    assert payment.receipt_id == receipt.id
    assert payment.bill_id == bill.id


def test_accept_without_payment(services, alice, receipt, db_session):
    result = services.receipts.accept_as_payment(receipt.id, alice.id)

    assert result.approved
    assert result.payment_id is None
    assert db_session.query(Payment).count() == 0


def test_accept_twice(services, alice, receipt, payment_payload, db_session):
    services.receipts.accept_as_payment(receipt.id, alice.id, payment=payment_payload)

    second = services.receipts.accept_as_payment(receipt.id, alice.id, payment=payment_payload)

    assert second.failure == Failure.INVALID_STATE
    assert db_session.query(Payment).count() == 1


def test_accept_with_unknown_bill_changes_nothing(services, alice, receipt):
    result = services.receipts.accept_as_payment(receipt.id, alice.id, bill_id=9999)

    assert result.failure == Failure.NOT_FOUND
    assert receipt.status == ItemStatus.NEW
    assert receipt.bill_id is None


def test_paid_receipt_cannot_be_reverted_or_deleted(services, alice, processed, payment_payload):
    receipt = services.conversion.convert_to_receipt(processed.id, alice.id).value
    services.receipts.accept_as_payment(receipt.id, alice.id, payment=payment_payload)

    assert services.conversion.revert_receipt(receipt.id, alice.id).failure == Failure.INVALID_STATE
    assert services.receipts.delete(receipt.id, alice.id).failure == Failure.INVALID_STATE


def test_update_only_while_new(services, alice, receipt):
    assert services.receipts.update(receipt.id, alice.id, {"description": "lunch"}).value.description == "lunch"

    services.receipts.reject(receipt.id, alice.id)

    assert services.receipts.update(receipt.id, alice.id, {"description": "x"}).failure == Failure.INVALID_STATE


def test_reject_receipt(services, alice, bob, receipt):
    assert services.receipts.reject(receipt.id, bob.id).failure == Failure.NOT_FOUND
    assert services.receipts.reject(receipt.id, alice.id).value.status == ItemStatus.REJECTED
    assert services.receipts.accept_as_payment(receipt.id, alice.id).failure == Failure.INVALID_STATE


def test_delete_receipt_from_file(services, alice, processed, storage, db_session):
    receipt = services.conversion.convert_to_receipt(processed.id, alice.id).value
    path = receipt.file_path

    assert services.receipts.delete(receipt.id, alice.id).ok
    assert db_session.get(IncomingFile, processed.id) is None
    assert not storage.exists(path)


def test_paid_receipt_keeps_its_bill(services, alice, bill, receipt, payment_payload, db_session):
    other_file = services.files.upload(alice.id, "second.pdf", b"%PDF-1.4 second bill").value
    other_bill = services.conversion.convert_to_bill(other_file.id, alice.id).value
    result = services.receipts.accept_as_payment(
        receipt.id, alice.id, payment=payment_payload, bill_id=bill.id
    )

    moved = services.receipts.associate(receipt.id, other_bill.id, alice.id)
    removed = services.receipts.remove_from_bill(receipt.id, alice.id)

    assert moved.failure == Failure.INVALID_STATE
    assert removed.failure == Failure.INVALID_STATE
    assert receipt.bill_id == bill.id
    assert db_session.get(Payment, result.payment_id).bill_id == bill.id
    assert services.receipts.associate(receipt.id, bill.id, alice.id).ok


def test_paid_standalone_receipt_cannot_join_a_bill(services, alice, bill, receipt, payment_payload):
    services.receipts.accept_as_payment(receipt.id, alice.id, payment=payment_payload)

    assert services.receipts.associate(receipt.id, bill.id, alice.id).failure == Failure.INVALID_STATE
    assert services.receipts.remove_from_bill(receipt.id, alice.id).ok
    assert receipt.bill_id is None
