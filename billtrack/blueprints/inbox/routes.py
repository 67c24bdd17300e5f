from flask import jsonify
from flask_login import current_user, login_required

from . import inbox_bp
from ..common import paging_args, respond
from ...services import get_services


@inbox_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    return jsonify(get_services().inbox.statistics(current_user.id))


@inbox_bp.route("/tabs", methods=["GET"])
@login_required
def tabs():
    return jsonify(get_services().inbox.tab_counts(current_user.id))


@inbox_bp.route("/payments", methods=["GET"])
@login_required
def payments():
    return jsonify(get_services().inbox.list_payments(current_user.id, **paging_args()).to_dict())


@inbox_bp.route("/payments/<int:payment_id>", methods=["GET"])
@login_required
def payment(payment_id: int):
    return respond(get_services().payments.find(payment_id, current_user.id))
