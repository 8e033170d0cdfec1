from library_app.models.user import User
from library_app.extensions import db


class UserRepo:
    @staticmethod
    def get_by_username(username: str):
        return User.query.filter_by(username=username).first()

    @staticmethod
    def get_by_id(user_id: int):
        return db.session.get(User, user_id)

    @staticmethod
    def list_active():
        return User.query.filter_by(is_active=True).order_by(User.username.asc()).all()

    @staticmethod
    def create(user: User):
        db.session.add(user)
        db.session.commit()
        return user
