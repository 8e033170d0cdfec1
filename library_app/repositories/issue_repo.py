from library_app.models.issue import Issue
from library_app.extensions import db


class IssueRepo:
    @staticmethod
    def get(issue_id: int):
        return db.session.get(Issue, issue_id)

    @staticmethod
    def add(issue: Issue):
        # no commit: the caller owns the transaction
        db.session.add(issue)
        return issue

    @staticmethod
    def find_open(book_id: int, user_id: int):
        return Issue.query.filter(
            Issue.book_id == book_id,
            Issue.user_id == user_id,
            Issue.return_date.is_(None),
        ).first()

    @staticmethod
    def list_open():
        return Issue.query.filter(Issue.return_date.is_(None)).order_by(Issue.due_date.asc()).all()

    @staticmethod
    def list_open_by_user(user_id: int):
        return (
            Issue.query.filter(Issue.user_id == user_id, Issue.return_date.is_(None))
            .order_by(Issue.due_date.asc())
            .all()
        )

    @staticmethod
    def list_unpaid_fines_by_user(user_id: int):
        return (
            Issue.query.filter(
                Issue.user_id == user_id,
                Issue.fine_amount > 0,
                Issue.fine_is_paid.is_(False),
            )
            .order_by(Issue.due_date.asc())
            .all()
        )

    @staticmethod
    def list_with_fines():
        return Issue.query.filter(Issue.fine_amount > 0).order_by(Issue.due_date.asc(), Issue.id.asc()).all()

    @staticmethod
    def count_open_for_book(book_id: int) -> int:
        return Issue.query.filter(Issue.book_id == book_id, Issue.return_date.is_(None)).count()

    @staticmethod
    def count_for_book(book_id: int) -> int:
        return Issue.query.filter(Issue.book_id == book_id).count()
