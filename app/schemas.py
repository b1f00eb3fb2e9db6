"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming data validation
- Response models for API responses
"""

from datetime import date as date_type
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Pydantic Request Models
# =============================================================================

class ScheduleUpsertRequest(BaseModel):
    """
    Body of POST /api/schedule.

    (driver, date) identifies the entry; the other fields replace the
    stored values when the entry already exists.
    """
    driver: str = Field(..., min_length=1, description="Driver name")
    date: date_type = Field(..., description="Calendar date (YYYY-MM-DD)")
    destination: Optional[str] = Field(None, description="Delivery destination")
    cargo: Optional[str] = Field(None, description="Cargo description")
    truck_number: Optional[str] = Field(None, description="Assigned truck")
    company_message: Optional[str] = Field(None, description="Note from the company")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "driver": "Tanaka",
                    "date": "2024-06-01",
                    "destination": "Osaka",
                    "cargo": "Electronics",
                    "truck_number": "T-12",
                    "company_message": "Leave by 6am",
                }
            ]
        }
    }


class MessageCreateRequest(BaseModel):
    """Body of POST /api/messages. role is either 'driver' or 'company'."""
    driver: str = Field(..., min_length=1, description="Driver whose thread this belongs to")
    role: Literal["driver", "company"] = Field(..., description="Author of the message")
    subject: Optional[str] = Field(None, description="Message subject")
    message: Optional[str] = Field(None, description="Message body")
    date: Optional[str] = Field(None, description="Client-side date label")


class MarkReadRequest(BaseModel):
    driver: str = Field(..., min_length=1)


class DriverCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Driver name")
    phone: Optional[str] = Field(None, description="Contact phone number")
    address: Optional[str] = Field(None, description="Home address")


class DriverDeleteRequest(BaseModel):
    name: str = Field(..., min_length=1)


# =============================================================================
# Pydantic Response Models
# =============================================================================

class StatusMessageResponse(BaseModel):
    """Fixed success message returned by write endpoints."""
    message: str


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    error: str = Field(..., description="Error description")


class ScheduleEntryResponse(BaseModel):
    id: int
    driver: str
    date: date_type
    destination: Optional[str] = None
    cargo: Optional[str] = None
    truck_number: Optional[str] = None
    company_message: Optional[str] = None

    model_config = {"from_attributes": True}


class HistoryEntryResponse(BaseModel):
    """A schedule entry as shown in a driver's history (no id, no driver)."""
    date: date_type
    destination: Optional[str] = None
    cargo: Optional[str] = None
    truck_number: Optional[str] = None
    company_message: Optional[str] = None

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    id: int
    driver: str
    role: str
    subject: Optional[str] = None
    message: Optional[str] = None
    date: Optional[str] = None
    timestamp: datetime = Field(..., description="Server-assigned insert time (UTC)")
    read_flag: bool

    model_config = {"from_attributes": True}

    @field_validator("timestamp")
    @classmethod
    def mark_utc(cls, v: datetime) -> datetime:
        """Stored timestamps are naive UTC; serialize them with an explicit offset."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
