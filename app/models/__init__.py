"""Database models."""

# Import all models in dependency order so foreign keys resolve

# Base models (no foreign keys)
from app.models.student import Student
from app.models.supervisor import Supervisor

# Models with foreign keys to base models
from app.models.partnership_request import PartnershipRequest
from app.models.application import Application

# Export all models
__all__ = [
    "Student",
    "Supervisor",
    "PartnershipRequest",
    "Application",
]
