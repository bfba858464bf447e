"""Service models for salon services."""

from enum import Enum
from typing import List

from pydantic import BaseModel


class ServiceType(str, Enum):
    """Services offered by the salon."""

    HAIRCUT = "Haircut"
    HAIR_COLOUR = "Hair Colour"
    FACIAL = "Facial"
    GROOMING = "Grooming"
    BRIDAL_EVENT_GLAM = "Bridal & Event Glam"
    HAIR_TREATMENTS = "Hair Treatments"


class Service(BaseModel):
    """Service catalogue entry."""

    type: ServiceType
    name: str
    description: str

    class Config:
        json_schema_extra = {
            "example": {
                "type": "Haircut",
                "name": "Haircut",
                "description": "Cut, wash and finish styled to suit you",
            }
        }


# Predefined services
SERVICES = {
    ServiceType.HAIRCUT: Service(
        type=ServiceType.HAIRCUT,
        name="Haircut",
        description="Cut, wash and finish styled to suit you",
    ),
    ServiceType.HAIR_COLOUR: Service(
        type=ServiceType.HAIR_COLOUR,
        name="Hair Colour",
        description="Full colour, highlights and toning",
    ),
    ServiceType.FACIAL: Service(
        type=ServiceType.FACIAL,
        name="Facial",
        description="Deep cleansing and moisturizing facial",
    ),
    ServiceType.GROOMING: Service(
        type=ServiceType.GROOMING,
        name="Grooming",
        description="Beard trim, shave and grooming",
    ),
    ServiceType.BRIDAL_EVENT_GLAM: Service(
        type=ServiceType.BRIDAL_EVENT_GLAM,
        name="Bridal & Event Glam",
        description="Hair and make-up for weddings and events",
    ),
    ServiceType.HAIR_TREATMENTS: Service(
        type=ServiceType.HAIR_TREATMENTS,
        name="Hair Treatments",
        description="Keratin, repair and scalp treatments",
    ),
}


def get_all_services() -> List[Service]:
    """Get all offered services."""
    return list(SERVICES.values())
