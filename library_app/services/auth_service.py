from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token

from library_app.errors import AuthError, ConflictError, ValidationError
from library_app.models.user import User, ROLES
from library_app.repositories.user_repo import UserRepo


class AuthService:
    @staticmethod
    def provision_user(
        username: str,
        password: str,
        role: str = "student",
        email: str = None,
        user_code: str = None,
        full_name: str = None,
    ):
        for name, value in (("username", username), ("password", password), ("role", role)):
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{name} must be a string.")

        username = (username or "").strip()
        password = password or ""
        role = (role or "").strip().lower()

        if not username or not password:
            raise ValidationError("username and password are required.")
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}.")
        if UserRepo.get_by_username(username):
            raise ConflictError("Username already exists.")

        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            role=role,
            email=(email or None),
            user_code=(user_code or None),
            full_name=(full_name or None),
            is_active=True,
        )
        UserRepo.create(user)
        return user

    @staticmethod
    def authenticate(role: str, username: str, password: str):
        if not all(isinstance(v, str) for v in (role, username, password)):
            raise AuthError()

        user = UserRepo.get_by_username(username.strip())
        if (
            not user
            or not user.is_active
            or user.role != role.strip().lower()
            or not check_password_hash(user.password_hash, password)
        ):
            raise AuthError()

        token = create_access_token(
            identity=str(user.id),
            additional_claims={"role": user.role, "username": user.username},
        )
        return token, user
