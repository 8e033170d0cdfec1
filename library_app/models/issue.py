from decimal import Decimal

from library_app.extensions import db
from library_app.utils.clock import utcnow

ISSUE_STATUSES = ("issued", "overdue", "returned")


class Issue(db.Model):
    __tablename__ = "issues"

    id = db.Column(db.Integer, primary_key=True)

    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    issue_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    due_date = db.Column(db.DateTime, nullable=False)
    return_date = db.Column(db.DateTime, nullable=True)

    # cache of derive_status() at the last write, never read as the truth
    status = db.Column(db.String(20), nullable=False, default="issued")

    fine_amount = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    fine_is_paid = db.Column(db.Boolean, nullable=False, default=False)
    fine_paid_date = db.Column(db.DateTime, nullable=True)

    renewal_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    book = db.relationship("Book", backref="issues")
    user = db.relationship("User", backref="issues")

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    def __repr__(self):
        return f"<Issue(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, status='{self.status}')>"
