"""Read-side reports.

Every report re-derives loan status and fines from due/return dates via
``services.fines`` instead of trusting the stored ``status`` column, and
copy counts are clamped into ``[0, total_copies]`` before they are summed.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from library_app.extensions import db
from library_app.models.book import Book
from library_app.models.issue import Issue
from library_app.models.user import User
from library_app.repositories.book_repo import BookRepo
from library_app.repositories.issue_repo import IssueRepo
from library_app.repositories.user_repo import UserRepo
from library_app.services.fines import days_overdue, derive_status, live_fine
from library_app.utils.clock import utcnow


def _clamped_available(book: Book) -> int:
    return max(0, min(book.available_copies or 0, book.total_copies or 0))


def _iso(value: datetime | None):
    return value.isoformat() if value else None


class ReportService:
    @staticmethod
    def overdue_report(now: datetime | None = None) -> list[dict]:
        now = now or utcnow()
        rate = current_app.config.get("FINE_PER_DAY", 2)

        rows = []
        for issue in IssueRepo.list_open():
            if derive_status(issue, now) != "overdue":
                continue
            rows.append({
                "issueId": issue.id,
                "title": issue.book.title if issue.book else None,
                "author": issue.book.author if issue.book else None,
                "isbn": issue.book.isbn if issue.book else None,
                "borrower": issue.user.username if issue.user else None,
                "borrowerRole": issue.user.role if issue.user else None,
                "issueDate": _iso(issue.issue_date),
                "dueDate": _iso(issue.due_date),
                "daysOverdue": days_overdue(issue.due_date, now),
                "fine": float(live_fine(issue, now, rate)),
            })
        return rows

    @staticmethod
    def popular_books_report() -> list[dict]:
        counts = dict(
            db.session.query(Issue.book_id, func.count(Issue.id)).group_by(Issue.book_id).all()
        )
        books = BookRepo.list_active()
        ranked = sorted(books, key=lambda b: (-counts.get(b.id, 0), b.title.casefold(), b.id))
        return [
            {
                "bookId": b.id,
                "title": b.title,
                "author": b.author,
                "isbn": b.isbn,
                "category": b.category,
                "totalBorrowed": int(counts.get(b.id, 0)),
                "availableCopies": _clamped_available(b),
                "totalCopies": b.total_copies,
            }
            for b in ranked
        ]

    @staticmethod
    def user_activity_report() -> list[dict]:
        per_user = {}
        for issue in Issue.query.all():
            stats = per_user.setdefault(
                issue.user_id, {"issued": 0, "returned": 0, "open": 0, "unpaid": Decimal("0.00")}
            )
            stats["issued"] += 1
            if issue.return_date is not None:
                stats["returned"] += 1
            else:
                stats["open"] += 1
            if not issue.fine_is_paid and (issue.fine_amount or 0) > 0:
                stats["unpaid"] += Decimal(str(issue.fine_amount))

        empty = {"issued": 0, "returned": 0, "open": 0, "unpaid": Decimal("0.00")}
        rows = []
        for user in UserRepo.list_active():
            stats = per_user.get(user.id, empty)
            rows.append({
                "userId": user.id,
                "username": user.username,
                "role": user.role,
                "userCode": user.user_code,
                "joinDate": _iso(user.created_at),
                "totalBooksIssued": stats["issued"],
                "totalBooksReturned": stats["returned"],
                "currentlyIssued": stats["open"],
                "outstandingFines": float(stats["unpaid"]),
            })
        return rows

    @staticmethod
    def fines_report() -> dict:
        paid, outstanding = [], []
        paid_total = Decimal("0.00")
        outstanding_total = Decimal("0.00")

        for issue in IssueRepo.list_with_fines():
            amount = Decimal(str(issue.fine_amount))
            row = {
                "issueId": issue.id,
                "username": issue.user.username if issue.user else None,
                "bookTitle": issue.book.title if issue.book else None,
                "amount": float(amount),
                "dueDate": _iso(issue.due_date),
                "returnDate": _iso(issue.return_date),
                "paidDate": _iso(issue.fine_paid_date),
            }
            if issue.fine_is_paid:
                paid_total += amount
                row["status"] = "Paid"
                row["runningTotal"] = float(paid_total)
                paid.append(row)
            else:
                outstanding_total += amount
                row["status"] = "Outstanding"
                row["runningTotal"] = float(outstanding_total)
                outstanding.append(row)

        return {
            "summary": {
                "totalOutstanding": float(outstanding_total),
                "totalCollected": float(paid_total),
            },
            "paid": paid,
            "outstanding": outstanding,
        }

    @staticmethod
    def library_stats_report(now: datetime | None = None) -> dict:
        now = now or utcnow()
        books = BookRepo.list_active()
        open_issues = IssueRepo.list_open()

        categories = Counter((b.category or "General") for b in books)
        total_users = db.session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0

        return {
            "totalBooks": len(books),
            "totalCopies": sum(b.total_copies for b in books),
            "availableCopies": sum(_clamped_available(b) for b in books),
            "activeIssues": len(open_issues),
            "issuedCopies": len(open_issues),
            "overdueIssues": sum(1 for i in open_issues if derive_status(i, now) == "overdue"),
            "totalUsers": int(total_users),
            "categoriesBreakdown": dict(sorted(categories.items())),
        }
