"""
Schedule entries: per-driver daily assignments keyed by (driver, date).
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.metrics import record_schedule_upsert
from app.models import ScheduleEntry
from app.storage import storage_operation

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"

_DIALECT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}

_MUTABLE_FIELDS = ("destination", "cargo", "truck_number", "company_message")


class ScheduleService:
    """Reads and writes schedule entries on a caller-supplied session."""

    def __init__(self, db: Session):
        self.db = db

    def _upsert_statement(self, values: dict):
        """INSERT ... ON CONFLICT DO UPDATE for dialects that support it, else None."""
        insert = _DIALECT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert is None:
            return None

        stmt = insert(ScheduleEntry).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=["driver", "date"],
            set_={field: stmt.excluded[field] for field in _MUTABLE_FIELDS},
        )

    def upsert(
        self,
        driver: str,
        date: date,
        destination: Optional[str] = None,
        cargo: Optional[str] = None,
        truck_number: Optional[str] = None,
        company_message: Optional[str] = None,
    ) -> str:
        """
        Create the entry for (driver, date) or replace its fields in place.

        On SQLite and PostgreSQL the write is a single INSERT ... ON CONFLICT
        DO UPDATE. Other databases update the existing row or insert a new one
        in the same transaction; the unique constraint still rejects a second
        row for the key.

        Returns:
            "created" or "updated"
        """
        values = {
            "driver": driver,
            "date": date,
            "destination": destination,
            "cargo": cargo,
            "truck_number": truck_number,
            "company_message": company_message,
        }

        with storage_operation(self.db, "schedule.upsert", "Failed to save schedule"):
            existing_id = (
                self.db.query(ScheduleEntry.id)
                .filter(ScheduleEntry.driver == driver, ScheduleEntry.date == date)
                .scalar()
            )
            stmt = self._upsert_statement(values)
            if stmt is not None:
                self.db.execute(stmt)
            elif existing_id is not None:
                (
                    self.db.query(ScheduleEntry)
                    .filter(ScheduleEntry.id == existing_id)
                    .update({field: values[field] for field in _MUTABLE_FIELDS}, synchronize_session=False)
                )
            else:
                self.db.add(ScheduleEntry(**values))

        result = UPDATED if existing_id is not None else CREATED
        record_schedule_upsert(result)
        logger.info(f"Schedule {result}: driver={driver}, date={date}")
        return result

    def list_for_driver(self, driver: Optional[str]) -> List[ScheduleEntry]:
        """All entries for a driver, earliest date first."""
        if not driver:
            return []
        with storage_operation(self.db, "schedule.list", "Failed to fetch schedule"):
            return (
                self.db.query(ScheduleEntry)
                .filter(ScheduleEntry.driver == driver)
                .order_by(ScheduleEntry.date.asc())
                .all()
            )

    def history(self, driver: Optional[str]) -> list:
        """Entry details for a driver, latest date first."""
        if not driver:
            return []
        with storage_operation(self.db, "schedule.history", "Failed to fetch history"):
            return (
                self.db.query(
                    ScheduleEntry.date,
                    ScheduleEntry.destination,
                    ScheduleEntry.cargo,
                    ScheduleEntry.truck_number,
                    ScheduleEntry.company_message,
                )
                .filter(ScheduleEntry.driver == driver)
                .order_by(ScheduleEntry.date.desc())
                .all()
            )
