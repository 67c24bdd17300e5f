from flask import Blueprint

receipts_bp = Blueprint("receipts", __name__, url_prefix="/receipts")
