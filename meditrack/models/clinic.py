"""
Clinic reference data and visit models.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class Doctor(BaseModel):
    """
    A doctor and the IANA timezone their visits are scheduled in.

    Stored visit instants are timezone-independent; the timezone is only
    used to interpret booking input and to render visits back.
    """

    id: int = Field(description="Doctor identifier")
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    timezone: str = Field(min_length=1, max_length=50, description="IANA timezone id")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Patient(BaseModel):
    """A patient that visits are booked for."""

    id: int = Field(description="Patient identifier")
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Strip surrounding whitespace, keep internal formatting (hyphens, apostrophes)."""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def full_name(self) -> str:
        """Display name used for search matching."""
        return f"{self.first_name} {self.last_name}"


class Visit(BaseModel):
    """
    A booked visit.

    Holds plain doctor/patient identifiers; callers resolve them through
    the repository when they need the related entity.
    """

    id: int
    start: datetime = Field(description="Absolute start instant (timezone-aware)")
    end: datetime = Field(description="Absolute end instant (timezone-aware)")
    doctor_id: int
    patient_id: int

    @model_validator(mode="after")
    def check_interval(self) -> "Visit":
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("visit instants must be timezone-aware")
        if self.start >= self.end:
            raise ValueError("visit start must be before end")
        return self

    model_config = {"frozen": True}
