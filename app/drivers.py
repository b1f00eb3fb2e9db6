"""
Driver roster: registration, listing and deactivation.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models import Driver, Message, ScheduleEntry
from app.storage import ServiceError, storage_operation

logger = logging.getLogger(__name__)


class DuplicateDriverError(ServiceError):
    """An active driver already uses the requested name."""

    def __init__(self, name: str):
        super().__init__("drivers.register", "Driver already registered")
        self.name = name


class DriverService:
    """
    Args:
        db: Session used for every operation
        allow_duplicate_names: When False, register rejects a name that an
            active driver already has
    """

    def __init__(self, db: Session, allow_duplicate_names: bool = True):
        self.db = db
        self.allow_duplicate_names = allow_duplicate_names

    def list_active(self) -> List[str]:
        with storage_operation(self.db, "drivers.list_active", "Failed to fetch drivers"):
            rows = (
                self.db.query(Driver.name)
                .filter(Driver.active.is_(True))
                .order_by(Driver.id.asc())
                .all()
            )
        return [row.name for row in rows]

    def register(self, name: str, phone: Optional[str], address: Optional[str]) -> Driver:
        driver = Driver(name=name, phone=phone, address=address, active=True)
        with storage_operation(self.db, "drivers.register", "Failed to register driver"):
            if not self.allow_duplicate_names:
                taken = (
                    self.db.query(Driver.id)
                    .filter(Driver.name == name, Driver.active.is_(True))
                    .first()
                )
                if taken is not None:
                    logger.warning(f"Rejected duplicate driver registration: {name}")
                    raise DuplicateDriverError(name)
            self.db.add(driver)
            self.db.flush()
        logger.info(f"Driver registered: id={driver.id}, name={name}")
        return driver

    def deactivate(self, name: str) -> None:
        """
        Deactivate a driver and drop their schedule and message history.

        All three statements share one transaction: either the driver is
        deactivated with an empty history, or nothing changes.
        """
        with storage_operation(self.db, "drivers.deactivate", "Failed to delete driver"):
            deactivated = (
                self.db.query(Driver)
                .filter(Driver.name == name)
                .update({Driver.active: False}, synchronize_session=False)
            )
            schedules = (
                self.db.query(ScheduleEntry)
                .filter(ScheduleEntry.driver == name)
                .delete(synchronize_session=False)
            )
            messages = (
                self.db.query(Message)
                .filter(Message.driver == name)
                .delete(synchronize_session=False)
            )
        logger.info(
            f"Driver deactivated: name={name}, rows={deactivated}, "
            f"schedules_deleted={schedules}, messages_deleted={messages}"
        )
