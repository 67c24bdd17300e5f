from flask import jsonify, request

from ..services import Failure
from ..services.payloads import InvalidInput

FAILURE_STATUS = {
    Failure.NOT_FOUND: 404,
    Failure.DUPLICATE_UPLOAD: 409,
    Failure.INVALID_STATE: 409,
    Failure.INVALID_FILE: 400,
    Failure.INVALID_INPUT: 400,
    Failure.OCR_UNAVAILABLE: 200,
}


def failure_response(result):
    """JSON error body for a failed Outcome or a refused ApprovalResult."""
    return (
        jsonify(error=result.detail, failure=result.failure.value),
        FAILURE_STATUS.get(result.failure, 400),
    )


def respond(outcome, status=200):
    if not outcome:
        return failure_response(outcome)
    return jsonify(outcome.value.to_dict()), status


def approval_response(result):
    if not result.approved:
        return failure_response(result)
    return jsonify(result.to_dict()), 200


def json_body():
    """Request payload from a JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def paging_args():
    args = request.args
    return {
        "page": args.get("page", 1, type=int),
        "per_page": args.get("per_page", type=int),
        "sort": args.get("sort"),
        "direction": "asc" if args.get("direction", "desc").lower() == "asc" else "desc",
    }
