from flask import Blueprint

inbox_bp = Blueprint("inbox", __name__, url_prefix="/inbox")
