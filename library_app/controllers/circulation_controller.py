from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt

from library_app.controllers.serializers import issue_json
from library_app.models.user import STAFF_ROLES
from library_app.services.circulation_service import CirculationService
from library_app.utils.decorators import forbidden, role_required
from library_app.utils.requests import json_body, optional_datetime, require_int, require_str

circulation_bp = Blueprint("circulation", __name__)


def _may_view(username: str) -> bool:
    # staff see everyone, members only themselves
    claims = get_jwt() or {}
    return claims.get("role") in STAFF_ROLES or claims.get("username") == username


@circulation_bp.post("/issuebook")
@role_required(*STAFF_ROLES)
def issue_book():
    data = json_body()
    issue = CirculationService.issue_book(
        require_int(data, "bookId"),
        require_int(data, "userId"),
        due_date=optional_datetime(data, "dueDate"),
    )
    return jsonify({"success": True, "message": "Book issued successfully!", "issue": issue_json(issue)}), 201


@circulation_bp.post("/returnbook")
@role_required(*STAFF_ROLES)
def return_book():
    data = json_body()
    issue = CirculationService.return_book(require_int(data, "bookId"), require_int(data, "userId"))
    fine = float(issue.fine_amount or 0)
    return jsonify({
        "success": True,
        "message": "Book returned successfully!",
        "fine": fine,
        "issue": issue_json(issue),
    })


@circulation_bp.post("/payfine")
@role_required(*STAFF_ROLES)
def pay_fine():
    data = json_body()
    issue = CirculationService.settle_fine(require_int(data, "issueId"), amount=data.get("amount"))
    return jsonify({"success": True, "message": "Fine paid.", "issue": issue_json(issue)})


@circulation_bp.post("/viewissued")
@jwt_required()
def view_issued():
    username = require_str(json_body(), "username")
    if not _may_view(username):
        return forbidden()
    books = CirculationService.view_issued(username)
    return jsonify({"success": True, "books": books})


@circulation_bp.post("/getfines")
@jwt_required()
def get_fines():
    username = require_str(json_body(), "username")
    if not _may_view(username):
        return forbidden()
    total, fines = CirculationService.get_fines(username)
    return jsonify({"success": True, "totalFine": float(total), "fines": fines})
