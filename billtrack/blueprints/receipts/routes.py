from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required

from . import receipts_bp
from ..common import approval_response, failure_response, json_body, paging_args, respond
from ..uploads.helpers import serve_stored_file
from ...models import DocumentKind
from ...services import get_services
from ...services.payloads import parse_int


@receipts_bp.route("", methods=["GET"])
@login_required
def list_receipts():
    args = request.args
    page = get_services().inbox.list_receipts(
        current_user.id,
        status=args.get("status"),
        bill_id=args.get("bill_id", type=int),
        standalone=args.get("standalone", "").lower() in ("1", "true", "yes"),
        **paging_args()
    )
    return jsonify(page.to_dict())


@receipts_bp.route("", methods=["POST"])
@login_required
def create():
    data = json_body()
    outcome = get_services().receipts.create(current_user.id, data, bill_id=data.get("bill_id"))
    if outcome:
        current_app.logger.info("Receipt %s created by hand", outcome.value.id)
    return respond(outcome, 201)


@receipts_bp.route("/available-bills", methods=["GET"])
@login_required
def available_bills():
    bills = get_services().receipts.available_bills(current_user.id)
    return jsonify(bills=[b.to_dict() for b in bills])


@receipts_bp.route("/<int:receipt_id>", methods=["GET"])
@login_required
def get_receipt(receipt_id: int):
    services = get_services()
    outcome = services.receipts.find(receipt_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    data = outcome.value.to_dict()
    data["can_revert"] = services.conversion.can_revert(DocumentKind.RECEIPT, receipt_id, current_user.id)
    return jsonify(data)


@receipts_bp.route("/<int:receipt_id>", methods=["PATCH"])
@login_required
def update(receipt_id: int):
    return respond(get_services().receipts.update(receipt_id, current_user.id, json_body()))


@receipts_bp.route("/<int:receipt_id>/bill", methods=["GET"])
@login_required
def associated_bill(receipt_id: int):
    outcome = get_services().receipts.associated_bill(receipt_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    return jsonify(bill=outcome.value.to_dict() if outcome.value is not None else None)


@receipts_bp.route("/<int:receipt_id>/bill", methods=["PUT"])
@login_required
def associate(receipt_id: int):
    bill_id = parse_int(json_body().get("bill_id"))
    if bill_id is None:
        return abort(400, description="bill_id is required")
    return respond(get_services().receipts.associate(receipt_id, bill_id, current_user.id))


@receipts_bp.route("/<int:receipt_id>/bill", methods=["DELETE"])
@login_required
def remove_from_bill(receipt_id: int):
    return respond(get_services().receipts.remove_from_bill(receipt_id, current_user.id))


@receipts_bp.route("/<int:receipt_id>/accept", methods=["POST"])
@login_required
def accept(receipt_id: int):
    data = json_body()
    result = get_services().receipts.accept_as_payment(
        receipt_id, current_user.id, payment=data.get("payment"), bill_id=data.get("bill_id")
    )
    if result.approved:
        current_app.logger.info("Receipt %s accepted (payment %s)", receipt_id, result.payment_id)
    if result.payment_error:
        current_app.logger.warning("Payment for receipt %s not created: %s", receipt_id, result.payment_error)
    return approval_response(result)


@receipts_bp.route("/<int:receipt_id>/reject", methods=["POST"])
@login_required
def reject(receipt_id: int):
    return respond(get_services().receipts.reject(receipt_id, current_user.id))


@receipts_bp.route("/<int:receipt_id>/revert", methods=["POST"])
@login_required
def revert(receipt_id: int):
    outcome = get_services().conversion.revert_receipt(receipt_id, current_user.id)
    if outcome:
        current_app.logger.info("Receipt %s reverted to incoming file %s", receipt_id, outcome.value.id)
    return respond(outcome)


@receipts_bp.route("/<int:receipt_id>", methods=["DELETE"])
@login_required
def delete(receipt_id: int):
    outcome = get_services().receipts.delete(receipt_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    current_app.logger.info("Receipt %s deleted", receipt_id)
    return jsonify(deleted=True, id=receipt_id)


@receipts_bp.route("/<int:receipt_id>/ocr/history", methods=["GET"])
@login_required
def ocr_history(receipt_id: int):
    outcome = get_services().inbox.ocr_history(
        current_user.id, kind=DocumentKind.RECEIPT, entity_id=receipt_id
    )
    if not outcome:
        return failure_response(outcome)
    return jsonify(attempts=[a.to_dict() for a in outcome.value])


@receipts_bp.route("/<int:receipt_id>/file", methods=["GET"])
@login_required
def download(receipt_id: int):
    outcome = get_services().receipts.find(receipt_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    if not outcome.value.has_file:
        return abort(404)
    return serve_stored_file(outcome.value.file_path, outcome.value.filename)
