from library_app.models.notification_log import NotificationLog
from library_app.extensions import db


class NotificationRepo:
    @staticmethod
    def already_sent(issue_id: int, notif_type: str = "overdue") -> bool:
        return (
            NotificationLog.query.filter_by(issue_id=issue_id, type=notif_type, success=True).first()
            is not None
        )

    @staticmethod
    def latest_attempt(issue_id: int, notif_type: str = "overdue"):
        return (
            NotificationLog.query.filter_by(issue_id=issue_id, type=notif_type)
            .order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
            .first()
        )

    @staticmethod
    def count_attempts(issue_id: int, notif_type: str = "overdue") -> int:
        return NotificationLog.query.filter_by(issue_id=issue_id, type=notif_type).count()

    @staticmethod
    def add(entry: NotificationLog):
        db.session.add(entry)
        return entry
