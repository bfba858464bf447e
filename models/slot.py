"""Slot models for the daily appointment grid."""

import datetime as dt
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field, model_validator


class SlotStatus(str, Enum):
    """Status reported for a slot that holds no appointment."""

    AVAILABLE = "available"


class SlotCalendarConfig(BaseModel):
    """Business hours and slot granularity used to enumerate a day's slots."""

    open_hour: int = Field(default=9, ge=0, le=23)
    close_hour: int = Field(default=17, ge=1, le=24)
    interval_minutes: int = Field(default=30, ge=5, le=240)

    @model_validator(mode="after")
    def check_hours(self) -> "SlotCalendarConfig":
        if self.close_hour <= self.open_hour:
            raise ValueError("close_hour must be later than open_hour")
        return self

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {"open_hour": 9, "close_hour": 17, "interval_minutes": 30}
        }


class SlotAvailability(BaseModel):
    """Free slots for one day."""

    date: dt.date
    slots: List[str]
    total_count: int = Field(..., ge=0)
    booked_count: int = Field(..., ge=0)
    available_count: int = Field(..., ge=0)


class SlotStatusMap(BaseModel):
    """Every slot of a day mapped to an appointment status or ``available``."""

    date: dt.date
    time_slots: Dict[str, str]
