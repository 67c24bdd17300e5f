from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from . import bills_bp
from ..common import approval_response, failure_response, json_body, paging_args, respond
from ..uploads.helpers import serve_stored_file
from ...models import DocumentKind
from ...services import get_services


@bills_bp.route("", methods=["GET"])
@login_required
def list_bills():
    page = get_services().inbox.list_bills(
        current_user.id, status=request.args.get("status"), **paging_args()
    )
    return jsonify(page.to_dict())


@bills_bp.route("/<int:bill_id>", methods=["GET"])
@login_required
def get_bill(bill_id: int):
    services = get_services()
    outcome = services.bills.find(bill_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    data = outcome.value.to_dict()
    data["can_revert"] = services.conversion.can_revert(DocumentKind.BILL, bill_id, current_user.id)
    return jsonify(data)


@bills_bp.route("/<int:bill_id>/draft", methods=["PUT"])
@login_required
def save_draft(bill_id: int):
    return respond(get_services().bills.save_draft(bill_id, current_user.id, json_body()))


@bills_bp.route("/<int:bill_id>/approve", methods=["POST"])
@login_required
def approve(bill_id: int):
    data = json_body()
    result = get_services().bills.approve(
        bill_id, current_user.id, draft=data.get("draft"), payment=data.get("payment")
    )
    if result.approved:
        current_app.logger.info("Bill %s approved (payment %s)", bill_id, result.payment_id)
    if result.payment_error:
        current_app.logger.warning("Payment for bill %s not created: %s", bill_id, result.payment_error)
    return approval_response(result)


@bills_bp.route("/<int:bill_id>/reject", methods=["POST"])
@login_required
def reject(bill_id: int):
    return respond(get_services().bills.reject(bill_id, current_user.id))


@bills_bp.route("/<int:bill_id>/revert", methods=["POST"])
@login_required
def revert(bill_id: int):
    outcome = get_services().conversion.revert_bill(bill_id, current_user.id)
    if outcome:
        current_app.logger.info("Bill %s reverted to incoming file %s", bill_id, outcome.value.id)
    return respond(outcome)


@bills_bp.route("/<int:bill_id>", methods=["DELETE"])
@login_required
def delete(bill_id: int):
    outcome = get_services().bills.delete(bill_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    current_app.logger.info("Bill %s deleted", bill_id)
    return jsonify(deleted=True, id=bill_id)


@bills_bp.route("/<int:bill_id>/receipts", methods=["GET"])
@login_required
def receipts(bill_id: int):
    outcome = get_services().bills.receipts_for(bill_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    return jsonify(receipts=[r.to_dict() for r in outcome.value])


@bills_bp.route("/<int:bill_id>/ocr/history", methods=["GET"])
@login_required
def ocr_history(bill_id: int):
    outcome = get_services().inbox.ocr_history(
        current_user.id, kind=DocumentKind.BILL, entity_id=bill_id
    )
    if not outcome:
        return failure_response(outcome)
    return jsonify(attempts=[a.to_dict() for a in outcome.value])


@bills_bp.route("/<int:bill_id>/file", methods=["GET"])
@login_required
def download(bill_id: int):
    outcome = get_services().bills.find(bill_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    return serve_stored_file(outcome.value.file_path, outcome.value.filename)
