"""
Data models for the MediTrack scheduling service.
"""

from .clinic import Doctor, Patient, Visit
from .listing import (
    DoctorResponse,
    DoctorSummary,
    PatientPage,
    PatientRecord,
    PatientResponse,
    PatientsListResponse,
    PatientVisitRow,
    VisitRecord,
    VisitResponse,
)

__all__ = [
    "Doctor",
    "Patient",
    "Visit",
    "PatientVisitRow",
    "PatientPage",
    "DoctorSummary",
    "VisitRecord",
    "PatientRecord",
    "DoctorResponse",
    "VisitResponse",
    "PatientResponse",
    "PatientsListResponse",
]
