from library_app.models.book import Book
from library_app.models.user import User, ROLES, STAFF_ROLES
from library_app.models.issue import Issue, ISSUE_STATUSES
from library_app.models.notification_log import NotificationLog

__all__ = ["Book", "User", "ROLES", "STAFF_ROLES", "Issue", "ISSUE_STATUSES", "NotificationLog"]
