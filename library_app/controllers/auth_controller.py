from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

from library_app.controllers.serializers import user_json
from library_app.errors import NotFoundError
from library_app.repositories.user_repo import UserRepo
from library_app.services.auth_service import AuthService
from library_app.utils.decorators import role_required
from library_app.utils.requests import json_body, optional_str

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
def login():
    data = json_body()
    token, user = AuthService.authenticate(
        optional_str(data, "role"),
        optional_str(data, "username"),
        optional_str(data, "password"),
    )
    return jsonify({
        "success": True,
        "role": user.role,
        "accessToken": token,
        "user": user_json(user),
    })


@auth_bp.post("/users")
@role_required("admin")
def provision_user():
    data = json_body()
    user = AuthService.provision_user(
        username=optional_str(data, "username"),
        password=optional_str(data, "password"),
        role=optional_str(data, "role", "student"),
        email=optional_str(data, "email"),
        user_code=optional_str(data, "userCode"),
        full_name=optional_str(data, "fullName"),
    )
    return jsonify({"success": True, "message": "User created.", "user": user_json(user)}), 201


@auth_bp.get("/me")
@jwt_required()
def me():
    user = UserRepo.get_by_id(int(get_jwt_identity()))
    if not user:
        raise NotFoundError("User not found.")
    return jsonify({"success": True, "user": user_json(user)})
