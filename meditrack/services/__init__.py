"""
Services layer for the MediTrack scheduling service.
"""

from .aggregation import RowAggregator
from .assembler import ResponseAssembler
from .booking import VisitBookingService
from .conflicts import ConflictChecker, intervals_overlap
from .patients import PatientListingService
from .query_planner import (
    AllPatientsQuery,
    DoctorFilteredPatientsQuery,
    PatientQuery,
    PatientQueryPlanner,
)
from .timezones import format_instant, to_canonical_instant

__all__ = [
    "VisitBookingService",
    "ConflictChecker",
    "intervals_overlap",
    "PatientListingService",
    "PatientQueryPlanner",
    "PatientQuery",
    "AllPatientsQuery",
    "DoctorFilteredPatientsQuery",
    "RowAggregator",
    "ResponseAssembler",
    "format_instant",
    "to_canonical_instant",
]
