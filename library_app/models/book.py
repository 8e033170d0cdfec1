from library_app.extensions import db
from library_app.utils.clock import utcnow


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    isbn = db.Column(db.String(32), unique=True, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False, default="General")
    publisher = db.Column(db.String(200), nullable=True)
    published_year = db.Column(db.Integer, nullable=True)

    total_copies = db.Column(db.Integer, nullable=False, default=1)
    available_copies = db.Column(db.Integer, nullable=False, default=1)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # optimistic concurrency: every UPDATE checks and bumps this
    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    def clamp_copies(self):
        if self.total_copies < 1:
            self.total_copies = 1
        if self.available_copies < 0:
            self.available_copies = 0
        if self.available_copies > self.total_copies:
            self.available_copies = self.total_copies

    def __repr__(self):
        return f"<Book(id={self.id}, isbn='{self.isbn}', available={self.available_copies}/{self.total_copies})>"
