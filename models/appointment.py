"""Appointment models for salon bookings."""

import datetime as dt
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from models.service import ServiceType
from utils.constants import MAX_EMAIL_LENGTH, MAX_NAME_LENGTH, MAX_PHONE_LENGTH
from utils.datetime_utils import is_time_of_day, parse_calendar_date
from utils.exceptions import ValidationError
from utils.validation import sanitize_text, validate_email

SlotKey = Tuple[dt.date, str]

ModelT = TypeVar("ModelT", bound=BaseModel)


class AppointmentStatus(str, Enum):
    """Appointment review status."""

    PENDING = "pending"
    APPROVED = "approved"
    CANCELLED = "cancelled"


def required_text(value: str, field: str, max_length: int) -> str:
    cleaned = sanitize_text(value, max_length=max_length)
    if not cleaned:
        raise ValueError(f"Please provide a {field}")
    return cleaned


def normalize_email(value: str) -> str:
    cleaned = sanitize_text(value, max_length=MAX_EMAIL_LENGTH).lower()
    if not validate_email(cleaned):
        raise ValueError("Please provide a valid email")
    return cleaned


def _check_time(value: str) -> str:
    value = value.strip()
    if not is_time_of_day(value):
        raise ValueError("time must be a zero-padded HH:MM value")
    return value


def _check_date(value: Any) -> dt.date:
    # Only ISO strings and dates; lax mode would read numbers as timestamps
    if not isinstance(value, (str, dt.date)):
        raise ValueError("date must be a YYYY-MM-DD string")
    try:
        return parse_calendar_date(value)
    except ValidationError as e:
        raise ValueError(str(e)) from e


class Appointment(BaseModel):
    """Stored appointment."""

    id: str
    name: str
    email: str
    phone: str
    date: dt.date
    time: str
    service_type: ServiceType
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "7f1c2c7e-8d0a-4f57-9a43-1f0f5e9a7b10",
                "name": "Jane",
                "email": "jane@example.com",
                "phone": "+420123456789",
                "date": "2024-06-01",
                "time": "09:00",
                "service_type": "Haircut",
                "status": "pending",
            }
        }

    @property
    def slot_key(self) -> SlotKey:
        return (self.date, self.time)

    @property
    def is_approved(self) -> bool:
        return self.status == AppointmentStatus.APPROVED


class AppointmentRequest(BaseModel):
    """Public appointment submission. Any client-supplied status is dropped."""

    name: str
    email: str
    phone: str
    date: dt.date
    time: str
    service_type: ServiceType = Field(
        validation_alias=AliasChoices("service_type", "serviceType")
    )

    class Config:
        extra = "ignore"

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return required_text(value, "name", MAX_NAME_LENGTH)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return required_text(value, "phone number", MAX_PHONE_LENGTH)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, value: Any) -> dt.date:
        return _check_date(value)

    @field_validator("time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return _check_time(value)


class AppointmentCreate(AppointmentRequest):
    """Administrative appointment creation; the initial status may be chosen."""

    status: AppointmentStatus = AppointmentStatus.PENDING


class AppointmentUpdate(BaseModel):
    """Partial appointment edit. Fields left out (or null) keep their value."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    service_type: Optional[ServiceType] = Field(
        default=None, validation_alias=AliasChoices("service_type", "serviceType")
    )
    status: Optional[AppointmentStatus] = None

    class Config:
        extra = "ignore"

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return required_text(value, "name", MAX_NAME_LENGTH)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return required_text(value, "phone number", MAX_PHONE_LENGTH)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return normalize_email(value)

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, value: Any) -> Optional[dt.date]:
        if value is None:
            return value
        return _check_date(value)

    @field_validator("time")
    @classmethod
    def check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_time(value)

    def changes(self) -> dict:
        """Fields actually supplied, as a plain dict."""
        return self.model_dump(exclude_none=True)


def _describe_errors(error: PydanticValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "body"
        message = item.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{location}: {message}")
    return "; ".join(messages)


def validate_payload(
    model_cls: Type[ModelT], data: Union[ModelT, Mapping[str, Any], None]
) -> ModelT:
    """
    Build a model from caller input, reporting problems as ValidationError.

    Args:
        model_cls: Target model class
        data: Model instance or raw mapping (e.g. a parsed JSON body)

    Returns:
        Validated model instance

    Raises:
        ValidationError: If the input is missing fields or malformed
    """
    if isinstance(data, model_cls):
        return data
    if data is None:
        data = {}
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_none=True)
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")

    try:
        return model_cls.model_validate(dict(data))
    except PydanticValidationError as e:
        raise ValidationError(_describe_errors(e)) from e
