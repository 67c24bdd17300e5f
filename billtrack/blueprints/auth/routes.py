from flask import current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from . import auth_bp
from ..common import json_body
from ...extensions import db, limiter
from ...models.user import User


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token():
    return jsonify(csrf_token=generate_csrf())


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10/hour")
def register():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or "@" not in email or len(password) < 8:
        return jsonify(error="A valid email and a password of at least 8 characters are required"), 400
    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409
    user = User(email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Registered user %s", user.id)
    return jsonify(user.to_dict()), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("20/minute")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(data.get("password") or ""):
        current_app.logger.info("Failed login for %s", email)
        return jsonify(error="Invalid credentials"), 401
    login_user(user)
    return jsonify(user.to_dict())


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify(logged_out=True)


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user.to_dict())
