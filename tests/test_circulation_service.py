from datetime import timedelta
from decimal import Decimal

import pytest

from library_app.errors import (
    AlreadyPaidError,
    DuplicateLoanError,
    NoActiveLoanError,
    NotFoundError,
    NothingOwedError,
    UnavailableError,
    ValidationError,
)
from library_app.extensions import db
from library_app.models import Book, Issue
from library_app.services.circulation_service import CirculationService
from library_app.services.fines import compute_fine

from tests.conftest import NOW


def _reload(book):
    db.session.expire_all()
    return db.session.get(Book, book.id)


def test_issue_creates_loan_and_takes_a_copy(make_user, make_book):
    user = make_user()
    book = make_book(copies=2)

    issue = CirculationService.issue_book(book.id, user.id, now=NOW)

    assert issue.id is not None
    assert issue.status == "issued"
    assert issue.issue_date == NOW
    assert issue.due_date == NOW + timedelta(days=14)
    assert issue.return_date is None
    assert _reload(book).available_copies == 1


def test_issue_then_return_restores_copies(make_user, make_book):
    user = make_user()
    book = make_book(copies=3)

    CirculationService.issue_book(book.id, user.id, now=NOW)
    CirculationService.return_book(book.id, user.id, now=NOW + timedelta(days=1))

    assert _reload(book).available_copies == 3


def test_issue_with_explicit_due_date(make_user, make_book):
    user = make_user()
    book = make_book()
    due = NOW + timedelta(days=3)

    issue = CirculationService.issue_book(book.id, user.id, due_date=due, now=NOW)

    assert issue.due_date == due


def test_issue_rejects_due_date_in_the_past(make_user, make_book):
    user = make_user()
    book = make_book()

    with pytest.raises(ValidationError):
        CirculationService.issue_book(book.id, user.id, due_date=NOW - timedelta(days=1), now=NOW)
    assert Issue.query.count() == 0


def test_issue_without_copies_is_unavailable_and_changes_nothing(make_user, make_book):
    first, second = make_user(), make_user()
    book = make_book(copies=1)
    CirculationService.issue_book(book.id, first.id, now=NOW)

    with pytest.raises(UnavailableError):
        CirculationService.issue_book(book.id, second.id, now=NOW)

    assert _reload(book).available_copies == 0
    assert Issue.query.count() == 1


def test_same_user_cannot_hold_two_copies_of_a_book(make_user, make_book):
    user = make_user()
    book = make_book(copies=2)
    CirculationService.issue_book(book.id, user.id, now=NOW)

    with pytest.raises(DuplicateLoanError):
        CirculationService.issue_book(book.id, user.id, now=NOW)
    assert _reload(book).available_copies == 1


def test_duplicate_check_includes_overdue_loans(make_user, make_book):
    user = make_user()
    book = make_book(copies=2)
    CirculationService.issue_book(book.id, user.id, now=NOW)

    with pytest.raises(DuplicateLoanError):
        CirculationService.issue_book(book.id, user.id, now=NOW + timedelta(days=30))


def test_issue_unknown_book_or_user(make_user, make_book):
    user = make_user()
    book = make_book()

    with pytest.raises(NotFoundError):
        CirculationService.issue_book(9999, user.id, now=NOW)
    with pytest.raises(NotFoundError):
        CirculationService.issue_book(book.id, 9999, now=NOW)


def test_issue_inactive_book_or_user(make_user, make_book):
    user = make_user()
    book = make_book()
    book.is_active = False
    db.session.commit()

    with pytest.raises(NotFoundError):
        CirculationService.issue_book(book.id, user.id, now=NOW)

    other = make_book()
    user.is_active = False
    db.session.commit()
    with pytest.raises(NotFoundError):
        CirculationService.issue_book(other.id, user.id, now=NOW)
    assert _reload(other).available_copies == 1


def test_return_without_open_loan_changes_nothing(make_user, make_book):
    user = make_user()
    book = make_book(copies=2)

    with pytest.raises(NoActiveLoanError):
        CirculationService.return_book(book.id, user.id, now=NOW)
    assert _reload(book).available_copies == 2


def test_second_return_is_rejected(make_user, make_book):
    user = make_user()
    book = make_book()
    CirculationService.issue_book(book.id, user.id, now=NOW)
    CirculationService.return_book(book.id, user.id, now=NOW + timedelta(days=2))

    with pytest.raises(NoActiveLoanError):
        CirculationService.return_book(book.id, user.id, now=NOW + timedelta(days=3))
    assert _reload(book).available_copies == 1


def test_on_time_return_has_no_fine(make_user, make_book):
    user = make_user()
    book = make_book()
    CirculationService.issue_book(book.id, user.id, now=NOW)

    issue = CirculationService.return_book(book.id, user.id, now=NOW + timedelta(days=14))

    assert issue.status == "returned"
    assert issue.return_date == NOW + timedelta(days=14)
    assert Decimal(issue.fine_amount) == 0


def test_late_return_stores_the_fine(make_user, make_book):
    user = make_user()
    book = make_book()
    issue = CirculationService.issue_book(book.id, user.id, now=NOW)
    returned_at = issue.due_date + timedelta(days=3, hours=12)

    issue = CirculationService.return_book(book.id, user.id, now=returned_at)

    assert Decimal(issue.fine_amount) == Decimal("8.00")
    assert issue.fine_is_paid is False
    # recomputing from the frozen return date gives the stored number
    db.session.expire_all()
    stored = db.session.get(Issue, issue.id)
    assert compute_fine(stored.due_date, stored.return_date) == Decimal(stored.fine_amount)


def test_return_never_exceeds_total(make_user, make_book):
    user = make_user()
    book = make_book(copies=2)
    CirculationService.issue_book(book.id, user.id, now=NOW)
    # counter drifted back to full while a loan is still open
    book = _reload(book)
    book.available_copies = 2
    db.session.commit()

    CirculationService.return_book(book.id, user.id, now=NOW + timedelta(days=1))

    assert _reload(book).available_copies == 2


def _returned_late(make_user, make_book, days_late=3):
    user = make_user()
    book = make_book()
    issue = CirculationService.issue_book(book.id, user.id, now=NOW)
    return CirculationService.return_book(book.id, user.id, now=issue.due_date + timedelta(days=days_late))


def test_settle_fine(make_user, make_book):
    issue = _returned_late(make_user, make_book)
    paid_at = NOW + timedelta(days=20)

    issue = CirculationService.settle_fine(issue.id, now=paid_at)

    assert issue.fine_is_paid is True
    assert issue.fine_paid_date == paid_at


def test_settle_fine_with_matching_amount(make_user, make_book):
    issue = _returned_late(make_user, make_book, days_late=2)

    issue = CirculationService.settle_fine(issue.id, amount="4", now=NOW + timedelta(days=20))

    assert issue.fine_is_paid is True


def test_settle_fine_rejects_partial_payment(make_user, make_book):
    issue = _returned_late(make_user, make_book, days_late=2)

    with pytest.raises(ValidationError):
        CirculationService.settle_fine(issue.id, amount=1, now=NOW + timedelta(days=20))
    db.session.expire_all()
    assert db.session.get(Issue, issue.id).fine_is_paid is False


def test_settle_twice_keeps_first_paid_date(make_user, make_book):
    issue = _returned_late(make_user, make_book)
    first = NOW + timedelta(days=20)
    CirculationService.settle_fine(issue.id, now=first)

    with pytest.raises(AlreadyPaidError):
        CirculationService.settle_fine(issue.id, now=first + timedelta(days=1))

    db.session.expire_all()
    assert db.session.get(Issue, issue.id).fine_paid_date == first


def test_settle_without_fine(make_user, make_book):
    user = make_user()
    book = make_book()
    issue = CirculationService.issue_book(book.id, user.id, now=NOW)

    with pytest.raises(NothingOwedError):
        CirculationService.settle_fine(issue.id, now=NOW)

    with pytest.raises(NotFoundError):
        CirculationService.settle_fine(12345, now=NOW)


def test_view_issued_lists_open_loans_with_live_status(make_user, make_book):
    user = make_user("reader")
    on_time = make_book(title="On Time")
    late = make_book(title="Late")
    done = make_book(title="Done")
    CirculationService.issue_book(on_time.id, user.id, now=NOW)
    CirculationService.issue_book(late.id, user.id, due_date=NOW + timedelta(days=1), now=NOW)
    CirculationService.issue_book(done.id, user.id, now=NOW)
    CirculationService.return_book(done.id, user.id, now=NOW + timedelta(days=1))

    rows = CirculationService.view_issued("reader", now=NOW + timedelta(days=3))

    by_title = {r["title"]: r for r in rows}
    assert set(by_title) == {"On Time", "Late"}
    assert by_title["Late"]["status"] == "overdue"
    assert by_title["Late"]["isOverdue"] is True
    assert by_title["Late"]["daysOverdue"] == 2
    assert by_title["Late"]["fine"] == 4.0
    assert by_title["On Time"]["status"] == "issued"
    assert by_title["On Time"]["fine"] == 0.0


def test_view_issued_unknown_user(app):
    with pytest.raises(NotFoundError):
        CirculationService.view_issued("ghost")


def test_get_fines_sums_unpaid_only(make_user, make_book):
    user = make_user("late-reader")
    b1, b2 = make_book(), make_book()
    i1 = CirculationService.issue_book(b1.id, user.id, now=NOW)
    CirculationService.issue_book(b2.id, user.id, now=NOW)
    CirculationService.return_book(b1.id, user.id, now=i1.due_date + timedelta(days=1))
    CirculationService.return_book(b2.id, user.id, now=i1.due_date + timedelta(days=5))
    CirculationService.settle_fine(i1.id, now=NOW + timedelta(days=30))

    total, fines = CirculationService.get_fines("late-reader")

    assert total == Decimal("10.00")
    assert [f["amount"] for f in fines] == [10.0]


def test_refresh_overdue_statuses_updates_cache(make_user, make_book):
    user = make_user()
    book = make_book()
    issue = CirculationService.issue_book(book.id, user.id, now=NOW)

    changed = CirculationService.refresh_overdue_statuses(now=NOW + timedelta(days=20))
    db.session.commit()

    assert changed == 1
    db.session.expire_all()
    assert db.session.get(Issue, issue.id).status == "overdue"
    assert CirculationService.refresh_overdue_statuses(now=NOW + timedelta(days=21)) == 0
