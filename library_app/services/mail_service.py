from __future__ import annotations

from flask import current_app
from flask_mail import Message

from library_app.extensions import mail
from library_app.models.notification_log import NotificationLog
from library_app.repositories.notification_repo import NotificationRepo
from library_app.utils.clock import utcnow

OVERDUE = "overdue"
MISSING_EMAIL = "missing_email"


def _overdue_text(issue, days: int, fine) -> tuple[str, str]:
    username = issue.user.username if issue.user else "reader"
    title = issue.book.title if issue.book else f"Book #{issue.book_id}"
    subject = f"Library: '{title}' is overdue"
    body = (
        f"Hello {username},\n\n"
        f"'{title}' was due back on {issue.due_date:%Y-%m-%d} "
        f"and is now {days} day(s) late.\n"
        f"Fine accrued so far: {fine}.\n\n"
        f"Please bring it to the circulation desk.\n"
    )
    return subject, body


class MailService:
    @staticmethod
    def send_email(to_email: str, subject: str, body: str) -> tuple[bool, str | None]:
        """
        return: (success, error_text)
        """
        try:
            mail.send(Message(subject=subject, recipients=[to_email], body=body))
        except Exception as e:
            current_app.logger.warning(f"[mail] delivery to {to_email} failed: {e}")
            return False, str(e)
        return True, None

    @staticmethod
    def log_notification(issue_id, notif_type, to_email, message, success, error=None) -> NotificationLog:
        # the overdue sweep commits once for the whole batch
        return NotificationRepo.add(
            NotificationLog(
                issue_id=issue_id,
                type=notif_type,
                email=to_email,
                message=(message or "")[:1000],
                success=bool(success),
                error_message=error,
                sent_at=utcnow(),
            )
        )

    @staticmethod
    def send_overdue_mail(issue, days: int, fine) -> bool:
        """Mail one overdue reminder for ``issue`` and record the attempt."""
        subject, body = _overdue_text(issue, days, fine)
        to_email = issue.user.email if issue.user else None

        if to_email:
            ok, err = MailService.send_email(to_email, subject, body)
        else:
            ok, err = False, MISSING_EMAIL

        MailService.log_notification(issue.id, OVERDUE, to_email, body, ok, err)
        return ok
