from flask import Blueprint, jsonify

from library_app.models.user import STAFF_ROLES
from library_app.services.report_service import ReportService
from library_app.utils.decorators import role_required

report_bp = Blueprint("reports", __name__)


@report_bp.get("/overdue")
@role_required(*STAFF_ROLES)
def overdue():
    rows = ReportService.overdue_report()
    return jsonify({"success": True, "overdueBooks": rows, "count": len(rows)})


@report_bp.get("/popular-books")
@role_required(*STAFF_ROLES)
def popular_books():
    return jsonify({"success": True, "books": ReportService.popular_books_report()})


@report_bp.get("/user-activity")
@role_required(*STAFF_ROLES)
def user_activity():
    return jsonify({"success": True, "users": ReportService.user_activity_report()})


@report_bp.get("/fines")
@role_required(*STAFF_ROLES)
def fines():
    report = ReportService.fines_report()
    return jsonify({"success": True, **report})


@report_bp.get("/library-stats")
@role_required(*STAFF_ROLES)
def library_stats():
    return jsonify({"success": True, "stats": ReportService.library_stats_report()})
