from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from library_app.errors import (
    ConcurrentUpdateError,
    ConflictError,
    DuplicateIsbnError,
    NotFoundError,
    ValidationError,
)
from library_app.extensions import db
from library_app.models.book import Book
from library_app.repositories.book_repo import BookRepo
from library_app.repositories.issue_repo import IssueRepo
from library_app.utils.requests import optional_int, optional_str, require_str

EDITABLE_FIELDS = ("title", "author", "category", "publisher")


class BookService:
    @staticmethod
    def list_books():
        return BookRepo.list_active()

    @staticmethod
    def search_books(query: str):
        text = query.strip() if isinstance(query, str) else ""
        if not text:
            raise ValidationError("query is required.")
        return BookRepo.search(text, current_app.config.get("SEARCH_LIMIT", 20))

    @staticmethod
    def get_by_isbn(isbn: str) -> Book:
        book = BookRepo.get_by_isbn((isbn or "").strip())
        if not book:
            raise NotFoundError("Book not found.")
        return book

    @staticmethod
    def add_book(data: dict) -> Book:
        title = require_str(data, "title")
        author = require_str(data, "author")
        isbn = require_str(data, "isbn")

        total = optional_int(data, "totalCopies", 1)
        if total < 1:
            raise ValidationError("totalCopies must be at least 1.")

        if BookRepo.get_by_isbn(isbn):
            raise DuplicateIsbnError()

        book = Book(
            title=title,
            author=author,
            isbn=isbn,
            category=optional_str(data, "category") or "General",
            publisher=optional_str(data, "publisher") or None,
            published_year=optional_int(data, "publishedYear"),
            total_copies=total,
            available_copies=total,
            is_active=True,
        )
        book.clamp_copies()
        try:
            BookRepo.create(book)
        except IntegrityError:
            # lost a race on the unique isbn index
            db.session.rollback()
            raise DuplicateIsbnError()

        current_app.logger.info(f"[catalog] added isbn={book.isbn} copies={book.total_copies}")
        return book

    @staticmethod
    def update_book(isbn: str, data: dict) -> Book:
        book = BookService.get_by_isbn(isbn)

        new_isbn = optional_str(data, "newIsbn")
        if new_isbn is not None and new_isbn != book.isbn:
            raise ValidationError("isbn cannot be changed.")

        # validate everything before touching the row
        changes = {}
        for field in EDITABLE_FIELDS:
            value = optional_str(data, field)
            if value is None:
                continue
            if field in ("title", "author") and not value:
                raise ValidationError(f"{field} cannot be empty.")
            changes[field] = value or None

        if "publishedYear" in data:
            changes["published_year"] = optional_int(data, "publishedYear")

        total = optional_int(data, "totalCopies")
        if total is not None:
            issued = book.total_copies - book.available_copies
            if total < 1:
                raise ValidationError("totalCopies must be at least 1.")
            if total < issued:
                raise ValidationError(f"totalCopies cannot be less than the {issued} copies currently issued.")
            changes["total_copies"] = total
            changes["available_copies"] = total - issued

        for field, value in changes.items():
            setattr(book, field, value)
        if not book.category:
            book.category = "General"

        book.clamp_copies()
        try:
            BookRepo.update()
        except StaleDataError:
            db.session.rollback()
            raise ConcurrentUpdateError()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"[catalog] updated isbn={book.isbn}")
        return book

    @staticmethod
    def remove_book(isbn: str) -> str:
        """Returns "deleted" or "deactivated"."""
        book = BookService.get_by_isbn(isbn)

        if IssueRepo.count_open_for_book(book.id) > 0:
            raise ConflictError("Cannot remove book. It is currently issued.")

        try:
            if IssueRepo.count_for_book(book.id) == 0:
                BookRepo.delete(book)
                outcome = "deleted"
            else:
                # ledger rows keep pointing at it
                book.is_active = False
                BookRepo.update()
                outcome = "deactivated"
        except StaleDataError:
            db.session.rollback()
            raise ConcurrentUpdateError()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"[catalog] removed isbn={isbn} ({outcome})")
        return outcome
