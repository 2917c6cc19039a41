"""
Patient listing models.

Three layers: the flat rows the repository returns, the aggregated
records built from them, and the camelCase response schema.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Repository rows
# ============================================================================


class PatientVisitRow(BaseModel):
    """
    One flat row of the patient listing query.

    Joins a patient with at most one visit (the latest one the patient had
    with that visit's doctor), the doctor, and the doctor's distinct
    patient count. Visit and doctor columns are all None for a patient
    without visits.
    """

    patient_id: int
    patient_first_name: str
    patient_last_name: str
    visit_id: Optional[int] = None
    visit_start: Optional[datetime] = None
    visit_end: Optional[datetime] = None
    doctor_id: Optional[int] = None
    doctor_first_name: Optional[str] = None
    doctor_last_name: Optional[str] = None
    doctor_timezone: Optional[str] = None
    doctor_patient_count: Optional[int] = None


class PatientPage(BaseModel):
    """Rows for one page of patients plus the total number of matching patients."""

    rows: List[PatientVisitRow] = Field(default_factory=list)
    total: int = Field(default=0, ge=0, description="Distinct matching patients, all pages")


# ============================================================================
# Aggregated records
# ============================================================================


class DoctorSummary(BaseModel):
    first_name: str
    last_name: str
    total_patients: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class VisitRecord(BaseModel):
    start: datetime
    end: datetime
    timezone: str = Field(description="Timezone of the doctor who owns the visit")
    doctor: DoctorSummary

    model_config = ConfigDict(frozen=True)


class PatientRecord(BaseModel):
    patient_id: int
    first_name: str
    last_name: str
    visits: Tuple[VisitRecord, ...] = ()

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Response schema
# ============================================================================


class DoctorResponse(BaseModel):
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    total_patients: int = Field(alias="totalPatients")

    model_config = ConfigDict(populate_by_name=True)


class VisitResponse(BaseModel):
    start: str
    end: str
    doctor: DoctorResponse


class PatientResponse(BaseModel):
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    last_visits: List[VisitResponse] = Field(default_factory=list, alias="lastVisits")

    model_config = ConfigDict(populate_by_name=True)


class PatientsListResponse(BaseModel):
    data: List[PatientResponse] = Field(default_factory=list)
    count: int = 0
