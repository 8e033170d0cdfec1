from flask import Blueprint, current_app, jsonify

from library_app.tasks.overdue_check import run_overdue_check
from library_app.utils.decorators import role_required

notif_bp = Blueprint("notifications", __name__)


@notif_bp.post("/run-overdue-check")
@role_required("admin")
def run_overdue_check_now():
    summary = run_overdue_check(current_app._get_current_object())
    return jsonify({"success": True, "message": "Overdue check completed.", "data": summary})
