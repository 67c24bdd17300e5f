from flask import current_app, jsonify, request
from flask_login import login_required

from . import catalog_bp
from ..common import json_body, respond
from ...services import get_services


@catalog_bp.route("/providers", methods=["GET"])
@login_required
def list_providers():
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    providers = get_services().catalog.list_providers(active_only=active_only)
    return jsonify(providers=[p.to_dict() for p in providers])


@catalog_bp.route("/providers", methods=["POST"])
@login_required
def create_provider():
    data = json_body()
    outcome = get_services().catalog.create_provider(
        data.get("name"), category=data.get("category"), comment=data.get("comment")
    )
    if outcome:
        current_app.logger.info("Service provider %s created", outcome.value.id)
    return respond(outcome, 201)


@catalog_bp.route("/providers/<int:provider_id>", methods=["GET"])
@login_required
def get_provider(provider_id: int):
    return respond(get_services().catalog.find_provider(provider_id))


@catalog_bp.route("/payment-methods", methods=["GET"])
@login_required
def list_methods():
    return jsonify(payment_methods=[m.to_dict() for m in get_services().catalog.list_methods()])


@catalog_bp.route("/payment-methods", methods=["POST"])
@login_required
def create_method():
    data = json_body()
    outcome = get_services().catalog.create_method(
        data.get("name"), type=data.get("type"), comment=data.get("comment")
    )
    return respond(outcome, 201)
