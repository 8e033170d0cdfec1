from __future__ import annotations

from datetime import datetime

from library_app.extensions import db
from library_app.repositories.issue_repo import IssueRepo
from library_app.repositories.notification_repo import NotificationRepo
from library_app.services.circulation_service import CirculationService
from library_app.services.fines import compute_fine, days_overdue, derive_status
from library_app.services.mail_service import MISSING_EMAIL, OVERDUE, MailService
from library_app.utils.clock import utcnow


def _reminder_settled(issue, max_attempts: int) -> bool:
    """True when the loan needs no further reminder attempt."""
    if NotificationRepo.already_sent(issue.id, OVERDUE):
        return True
    last = NotificationRepo.latest_attempt(issue.id, OVERDUE)
    if last is None:
        return False
    if last.error_message == MISSING_EMAIL:
        # wait until the member has an address on file
        return not (issue.user and issue.user.email)
    return NotificationRepo.count_attempts(issue.id, OVERDUE) >= max_attempts


def run_overdue_check(app, now: datetime | None = None) -> dict:
    """
    Refreshes the cached status of open loans and mails one reminder per
    overdue loan. Loans already reminded, loans whose member has no email
    and loans that used up REMINDER_MAX_ATTEMPTS failed sends are skipped.
    """
    with app.app_context():
        try:
            now = now or utcnow()
            rate = app.config.get("FINE_PER_DAY", 2)
            max_attempts = int(app.config.get("REMINDER_MAX_ATTEMPTS", 3))

            status_changed = CirculationService.refresh_overdue_statuses(now)

            overdue = [i for i in IssueRepo.list_open() if derive_status(i, now) == "overdue"]
            mailed = 0
            skipped = 0
            for issue in overdue:
                if _reminder_settled(issue, max_attempts):
                    skipped += 1
                    continue
                days = days_overdue(issue.due_date, now)
                if MailService.send_overdue_mail(issue, days, compute_fine(issue.due_date, now, rate)):
                    mailed += 1

            db.session.commit()

            summary = {
                "overdue": len(overdue),
                "statusChanged": status_changed,
                "mailed": mailed,
                "skipped": skipped,
            }
            app.logger.info(
                f"[overdue_check] overdue={len(overdue)} status_changed={status_changed} "
                f"mailed={mailed} skipped={skipped}"
            )
            return summary

        except Exception as e:
            db.session.rollback()
            app.logger.exception(f"[overdue_check] failed: {e}")
            raise
