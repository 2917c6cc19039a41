"""
Response assembly for the patient listing.
"""

from typing import Iterable

from meditrack.models import (
    DoctorResponse,
    PatientRecord,
    PatientResponse,
    PatientsListResponse,
    VisitRecord,
    VisitResponse,
)
from meditrack.services.timezones import format_instant


class ResponseAssembler:
    """Maps patient records to the listing response, one timezone per visit."""

    def assemble(self, records: Iterable[PatientRecord], total: int) -> PatientsListResponse:
        return PatientsListResponse(
            data=[self._patient(record) for record in records],
            count=total,
        )

    def _patient(self, record: PatientRecord) -> PatientResponse:
        return PatientResponse(
            first_name=record.first_name,
            last_name=record.last_name,
            last_visits=[self._visit(visit) for visit in record.visits],
        )

    @staticmethod
    def _visit(visit: VisitRecord) -> VisitResponse:
        # Times are shown in the timezone of the doctor who owns the visit
        return VisitResponse(
            start=format_instant(visit.start, visit.timezone),
            end=format_instant(visit.end, visit.timezone),
            doctor=DoctorResponse(
                first_name=visit.doctor.first_name,
                last_name=visit.doctor.last_name,
                total_patients=visit.doctor.total_patients,
            ),
        )
