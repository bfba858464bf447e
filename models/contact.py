"""Contact form message sent from the salon website."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from models.appointment import normalize_email, required_text
from utils.constants import MAX_MESSAGE_LENGTH, MAX_NAME_LENGTH
from utils.datetime_utils import utc_now


class ContactMessage(BaseModel):
    """A visitor's question for the salon. Nothing is stored."""

    name: str
    email: str
    message: str
    received_at: dt.datetime = Field(default_factory=utc_now)

    class Config:
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "name": "Jane",
                "email": "jane@example.com",
                "message": "Do you offer keratin treatments on Saturdays?",
            }
        }

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return required_text(value, "name", MAX_NAME_LENGTH)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("message")
    @classmethod
    def check_message(cls, value: str) -> str:
        return required_text(value, "message", MAX_MESSAGE_LENGTH)
