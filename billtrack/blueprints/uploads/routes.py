from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from . import uploads_bp
from .helpers import serve_stored_file
from ..common import failure_response, json_body, paging_args, respond
from ...extensions import limiter
from ...services import Failure, get_services
from ...services.payloads import FieldEdits


@uploads_bp.route("", methods=["POST"])
@limiter.limit("20/minute")
@login_required
def upload():
    if "file" not in request.files:
        return jsonify(error="No file part in request", failure=Failure.INVALID_FILE.value), 400
    f = request.files["file"]
    outcome = get_services().files.upload(current_user.id, f.filename, f.read())
    if not outcome:
        current_app.logger.info("Upload of %r rejected: %s", f.filename, outcome.detail)
        return failure_response(outcome)
    current_app.logger.info("User %s uploaded incoming file %s", current_user.id, outcome.value.id)
    return jsonify(outcome.value.to_dict()), 201


@uploads_bp.route("", methods=["GET"])
@login_required
def list_files():
    page = get_services().inbox.list_files(
        current_user.id, status=request.args.get("status"), **paging_args()
    )
    return jsonify(page.to_dict())


@uploads_bp.route("/ocr/status", methods=["GET"])
@login_required
def ocr_status():
    return jsonify(get_services().inbox.ocr_status())


@uploads_bp.route("/<int:file_id>", methods=["GET"])
@login_required
def get_file(file_id: int):
    return respond(get_services().files.find(file_id, current_user.id))


@uploads_bp.route("/<int:file_id>", methods=["PATCH"])
@login_required
def update_fields(file_id: int):
    edits = FieldEdits.from_mapping(json_body())
    return respond(get_services().files.update_fields(file_id, current_user.id, edits))


def _ocr_response(outcome):
    if outcome.failure == Failure.OCR_UNAVAILABLE:
        return jsonify(triggered=False, reason=outcome.detail), 200
    if not outcome:
        return failure_response(outcome)
    return jsonify(triggered=True, file=outcome.value.to_dict()), 202


@uploads_bp.route("/<int:file_id>/ocr", methods=["POST"])
@login_required
def trigger_ocr(file_id: int):
    outcome = get_services().files.trigger_ocr(file_id, current_user.id)
    if outcome:
        current_app.logger.info("OCR queued for incoming file %s (task %s)", file_id, outcome.value.task_id)
    return _ocr_response(outcome)


@uploads_bp.route("/<int:file_id>/ocr/retry", methods=["POST"])
@login_required
def retry_ocr(file_id: int):
    outcome = get_services().files.retry_ocr(file_id, current_user.id)
    if outcome:
        current_app.logger.info("OCR retried for incoming file %s (task %s)", file_id, outcome.value.task_id)
    return _ocr_response(outcome)


@uploads_bp.route("/<int:file_id>/ocr/history", methods=["GET"])
@login_required
def ocr_history(file_id: int):
    outcome = get_services().inbox.ocr_history(current_user.id, file_id=file_id)
    if not outcome:
        return failure_response(outcome)
    return jsonify(attempts=[a.to_dict() for a in outcome.value])


@uploads_bp.route("/<int:file_id>/approve", methods=["POST"])
@login_required
def approve(file_id: int):
    return respond(get_services().files.approve(file_id, current_user.id))


@uploads_bp.route("/<int:file_id>/reject", methods=["POST"])
@login_required
def reject(file_id: int):
    return respond(get_services().files.reject(file_id, current_user.id))


@uploads_bp.route("/<int:file_id>/dispatch", methods=["POST"])
@login_required
def dispatch(file_id: int):
    target = json_body().get("target")
    outcome = get_services().files.dispatch(file_id, current_user.id, target)
    if outcome:
        current_app.logger.info("Incoming file %s dispatched as %s", file_id, target)
    return respond(outcome, 201)


@uploads_bp.route("/<int:file_id>/convert/<kind>", methods=["POST"])
@login_required
def convert(file_id: int, kind: str):
    conversion = get_services().conversion
    if kind == "bill":
        outcome = conversion.convert_to_bill(file_id, current_user.id)
    elif kind == "receipt":
        outcome = conversion.convert_to_receipt(file_id, current_user.id)
    else:
        return jsonify(error=f"Unknown document kind: {kind}"), 404
    if outcome:
        current_app.logger.info("Incoming file %s converted to %s %s", file_id, kind, outcome.value.id)
    return respond(outcome, 201)


@uploads_bp.route("/<int:file_id>", methods=["DELETE"])
@login_required
def delete(file_id: int):
    outcome = get_services().files.delete(file_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    current_app.logger.info("Incoming file %s deleted", file_id)
    return jsonify(deleted=True, id=file_id)


@uploads_bp.route("/<int:file_id>/file", methods=["GET"])
@login_required
def download(file_id: int):
    outcome = get_services().files.find(file_id, current_user.id)
    if not outcome:
        return failure_response(outcome)
    return serve_stored_file(outcome.value.file_path, outcome.value.filename)
