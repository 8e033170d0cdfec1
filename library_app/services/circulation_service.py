from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from library_app.errors import (
    AlreadyPaidError,
    ConcurrentUpdateError,
    DuplicateLoanError,
    NoActiveLoanError,
    NotFoundError,
    NothingOwedError,
    UnavailableError,
    ValidationError,
)
from library_app.extensions import db
from library_app.models.issue import Issue
from library_app.repositories.book_repo import BookRepo
from library_app.repositories.issue_repo import IssueRepo
from library_app.repositories.user_repo import UserRepo
from library_app.services.fines import compute_fine, days_overdue, derive_status, live_fine
from library_app.utils.clock import to_naive_utc, utcnow


class CirculationService:
    """Issue / return / fine lifecycle.

    Writes that touch a book's copy counter run through ``_atomic``: the
    ledger row and the counter change are committed together, and a
    concurrent change to the same book (detected by the ``Book.version``
    check at flush time) rolls everything back and replays the whole
    read-check-write from scratch.
    """

    @staticmethod
    def _fine_rate():
        return current_app.config.get("FINE_PER_DAY", 2)

    @staticmethod
    def _atomic(action, label: str):
        attempts = max(1, int(current_app.config.get("ISSUE_RETRY_ATTEMPTS", 3)))
        for attempt in range(1, attempts + 1):
            try:
                result = action()
                db.session.commit()
                return result
            except StaleDataError:
                db.session.rollback()
                current_app.logger.warning(
                    f"[circulation] {label}: book changed concurrently (attempt {attempt}/{attempts})"
                )
            except Exception:
                db.session.rollback()
                raise
        raise ConcurrentUpdateError()

    @staticmethod
    def issue_book(book_id: int, user_id: int, due_date: datetime | None = None, now: datetime | None = None) -> Issue:
        now = now or utcnow()
        if due_date is None:
            due_date = now + timedelta(days=current_app.config.get("LOAN_PERIOD_DAYS", 14))
        else:
            due_date = to_naive_utc(due_date)
            if due_date <= now:
                raise ValidationError("dueDate must be in the future.")

        def _issue():
            book = BookRepo.get(book_id)
            if not book or not book.is_active:
                raise NotFoundError("Book not found.")

            user = UserRepo.get_by_id(user_id)
            if not user or not user.is_active:
                raise NotFoundError("User not found.")

            if book.available_copies is None or book.available_copies < 1:
                raise UnavailableError()

            if IssueRepo.find_open(book.id, user.id):
                raise DuplicateLoanError()

            book.available_copies -= 1
            book.clamp_copies()

            issue = Issue(
                book_id=book.id,
                user_id=user.id,
                issue_date=now,
                due_date=due_date,
                status="issued",
                fine_amount=Decimal("0.00"),
                fine_is_paid=False,
            )
            return IssueRepo.add(issue)

        issue = CirculationService._atomic(_issue, "issue")
        current_app.logger.info(
            f"[circulation] issued book_id={book_id} user_id={user_id} issue_id={issue.id} due={issue.due_date}"
        )
        return issue

    @staticmethod
    def return_book(book_id: int, user_id: int, now: datetime | None = None) -> Issue:
        now = now or utcnow()
        rate = CirculationService._fine_rate()

        def _return():
            issue = IssueRepo.find_open(book_id, user_id)
            if not issue:
                raise NoActiveLoanError()

            issue.return_date = now
            issue.status = "returned"
            if now > issue.due_date:
                issue.fine_amount = compute_fine(issue.due_date, now, rate)

            book = BookRepo.get(issue.book_id)
            if book:
                book.available_copies = min(book.total_copies, book.available_copies + 1)
                book.clamp_copies()
            return issue

        issue = CirculationService._atomic(_return, "return")
        current_app.logger.info(
            f"[circulation] returned issue_id={issue.id} book_id={book_id} user_id={user_id} fine={issue.fine_amount}"
        )
        return issue

    @staticmethod
    def settle_fine(issue_id: int, amount=None, now: datetime | None = None) -> Issue:
        now = now or utcnow()

        issue = IssueRepo.get(issue_id)
        if not issue:
            raise NotFoundError("Issue not found.")

        owed = Decimal(str(issue.fine_amount or 0))
        if owed <= 0:
            raise NothingOwedError()
        if issue.fine_is_paid:
            raise AlreadyPaidError()

        if amount is not None:
            try:
                paid = Decimal(str(amount))
            except InvalidOperation:
                raise ValidationError("amount must be a number.")
            if paid != owed:
                raise ValidationError(f"amount must equal the outstanding fine ({owed}).")

        try:
            # only the writer that still sees is_paid = False wins
            result = db.session.execute(
                update(Issue)
                .where(Issue.id == issue.id, Issue.fine_is_paid.is_(False))
                .values(fine_is_paid=True, fine_paid_date=now, updated_at=now)
            )
            if result.rowcount != 1:
                raise AlreadyPaidError()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        db.session.refresh(issue)
        current_app.logger.info(f"[circulation] fine settled issue_id={issue.id} amount={owed}")
        return issue

    @staticmethod
    def refresh_overdue_statuses(now: datetime | None = None) -> int:
        """Rewrite the cached status of open loans; the caller commits."""
        now = now or utcnow()
        changed = 0
        for issue in IssueRepo.list_open():
            status = derive_status(issue, now)
            if issue.status != status:
                issue.status = status
                changed += 1
        return changed

    @staticmethod
    def view_issued(username: str, now: datetime | None = None) -> list[dict]:
        now = now or utcnow()
        user = UserRepo.get_by_username(username)
        if not user:
            raise NotFoundError("User not found.")

        rate = CirculationService._fine_rate()
        rows = []
        for issue in IssueRepo.list_open_by_user(user.id):
            status = derive_status(issue, now)
            rows.append({
                "issueId": issue.id,
                "bookId": issue.book_id,
                "title": issue.book.title if issue.book else None,
                "author": issue.book.author if issue.book else None,
                "isbn": issue.book.isbn if issue.book else None,
                "issueDate": issue.issue_date.isoformat(),
                "dueDate": issue.due_date.isoformat(),
                "status": status,
                "isOverdue": status == "overdue",
                "daysOverdue": days_overdue(issue.due_date, now),
                "fine": float(live_fine(issue, now, rate)),
            })
        return rows

    @staticmethod
    def get_fines(username: str) -> tuple[Decimal, list[dict]]:
        user = UserRepo.get_by_username(username)
        if not user:
            raise NotFoundError("User not found.")

        issues = IssueRepo.list_unpaid_fines_by_user(user.id)
        total = sum((Decimal(str(i.fine_amount)) for i in issues), Decimal("0.00"))
        fines = [
            {
                "issueId": i.id,
                "bookTitle": i.book.title if i.book else None,
                "amount": float(i.fine_amount),
                "dueDate": i.due_date.isoformat(),
                "returnDate": i.return_date.isoformat() if i.return_date else None,
            }
            for i in issues
        ]
        return total, fines
