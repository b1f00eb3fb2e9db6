"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text, UniqueConstraint

from app.storage import Base


class Driver(Base):
    """
    A registered driver.

    Table: driver_list
    Rows are deactivated, never deleted.
    """
    __tablename__ = "driver_list"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    active = Column(Boolean, nullable=False, default=True)


class ScheduleEntry(Base):
    """
    One day's assignment for one driver.

    Table: schedule
    (driver, date) is unique so writes can use INSERT ... ON CONFLICT.
    """
    __tablename__ = "schedule"
    __table_args__ = (
        UniqueConstraint("driver", "date", name="uq_schedule_driver_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    destination = Column(String, nullable=True)
    cargo = Column(String, nullable=True)
    truck_number = Column(String, nullable=True)
    company_message = Column(Text, nullable=True)


class Message(Base):
    """
    A chat message in one driver's thread.

    Table: messages
    timestamp is server time (naive UTC), date is whatever the client sent.
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)
    subject = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    date = Column(String, nullable=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    read_flag = Column(Boolean, nullable=False, default=False)
