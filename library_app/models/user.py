from library_app.extensions import db
from library_app.utils.clock import utcnow

ROLES = ("admin", "student", "teacher", "assistant")
STAFF_ROLES = ("admin", "assistant")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="student")  # admin/student/teacher/assistant

    user_code = db.Column(db.String(40), nullable=True)  # library card id, e.g. S123
    full_name = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
