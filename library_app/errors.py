"""Error taxonomy shared by services and controllers.

Every business-rule failure is a ``LibraryError``.  It subclasses
``ValueError`` so callers that only care about "the request was refused"
can keep catching ``ValueError``.  Each class carries the HTTP status and a
short machine-readable code that the API puts next to the message.
"""

from __future__ import annotations


class LibraryError(ValueError):
    status_code = 400
    code = "error"
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(LibraryError):
    code = "validation_error"
    default_message = "Invalid request."


class AuthError(LibraryError):
    status_code = 401
    code = "invalid_credentials"
    default_message = "Invalid credentials."


class NotFoundError(LibraryError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class NoActiveLoanError(NotFoundError):
    code = "no_active_loan"
    default_message = "No active issue found for this book."


class ConflictError(LibraryError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict."


class DuplicateIsbnError(ConflictError):
    code = "duplicate_isbn"
    default_message = "Book with this ISBN already exists."


class UnavailableError(ConflictError):
    code = "unavailable"
    default_message = "Book is not available."


class DuplicateLoanError(ConflictError):
    code = "duplicate_loan"
    default_message = "User already has this book issued."


class NothingOwedError(ConflictError):
    code = "nothing_owed"
    default_message = "No fine is owed for this issue."


class AlreadyPaidError(ConflictError):
    code = "already_paid"
    default_message = "Fine has already been paid."


class ConcurrentUpdateError(ConflictError):
    code = "concurrent_update"
    default_message = "Book was modified concurrently, please retry."
