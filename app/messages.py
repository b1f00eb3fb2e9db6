"""
Message log between the company and each driver.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models import Message
from app.storage import storage_operation

logger = logging.getLogger(__name__)

DRIVER_ROLE = "driver"
COMPANY_ROLE = "company"


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in messages.timestamp."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MessageService:
    """
    Appends, lists, marks and purges messages.

    Args:
        db: Session used for every operation
        retention_days: Age after which purge_expired deletes a message
    """

    def __init__(self, db: Session, retention_days: int = 3):
        self.db = db
        self.retention_days = retention_days

    def send(
        self,
        driver: str,
        role: str,
        subject: Optional[str],
        message: Optional[str],
        date: Optional[str],
    ) -> Message:
        """Store a new unread message stamped with the server clock."""
        row = Message(
            driver=driver,
            role=role,
            subject=subject,
            message=message,
            date=date,
            timestamp=utcnow(),
            read_flag=False,
        )
        with storage_operation(self.db, "messages.send", "Failed to send message"):
            self.db.add(row)
            self.db.flush()
        logger.info(f"Message stored: id={row.id}, driver={driver}, role={role}")
        return row

    def list(self, driver: Optional[str]) -> List[Message]:
        """
        A driver's thread, oldest first.

        Ordered by the server timestamp; id breaks ties between messages
        stored within the same clock tick.
        """
        if not driver:
            return []
        with storage_operation(self.db, "messages.list", "Failed to fetch messages"):
            return (
                self.db.query(Message)
                .filter(Message.driver == driver)
                .order_by(Message.timestamp.asc(), Message.id.asc())
                .all()
            )

    def mark_read(self, driver: str) -> int:
        """Flag every driver-authored message in the thread as read."""
        with storage_operation(self.db, "messages.mark_read", "Failed to mark as read"):
            count = (
                self.db.query(Message)
                .filter(Message.driver == driver, Message.role == DRIVER_ROLE)
                .update({Message.read_flag: True}, synchronize_session=False)
            )
        logger.info(f"Marked {count} messages as read for driver={driver}")
        return count

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Delete messages whose timestamp is strictly older than the retention window.

        Args:
            now: Reference time (naive UTC); defaults to the current time

        Returns:
            Number of messages deleted
        """
        cutoff = (now or utcnow()) - timedelta(days=self.retention_days)
        with storage_operation(self.db, "messages.purge_expired", "Failed to purge messages"):
            count = (
                self.db.query(Message)
                .filter(Message.timestamp < cutoff)
                .delete(synchronize_session=False)
            )
        logger.info(f"Purged {count} messages older than {cutoff.isoformat()}")
        return count
