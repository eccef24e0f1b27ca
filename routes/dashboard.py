"""Dashboard blueprint."""
from __future__ import annotations

from flask import Blueprint

from routes import current_user_id, json_success
from services.dashboard_service import build_dashboard

dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/dashboard", methods=["GET"])
def dashboard():
    return json_success(**build_dashboard(current_user_id()))
