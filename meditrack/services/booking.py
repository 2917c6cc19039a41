"""
Booking Service - books visits between doctors and patients.

Resolves the doctor and patient, normalizes the requested times into the
doctor's timezone, validates the range and checks it for conflicts before
persisting. The conflict check and the insert share one booking
transaction, so two overlapping bookings for the same doctor can never
both succeed.
"""

from datetime import datetime
from enum import Enum

from loguru import logger

from meditrack.exceptions import (
    DoctorNotFound,
    InvalidTimeRange,
    MeditrackError,
    PatientNotFound,
    PersistenceFailure,
    SchedulingConflict,
)
from meditrack.models import Doctor, Patient
from meditrack.repositories.base import ClinicRepository
from meditrack.services.conflicts import ConflictChecker
from meditrack.services.timezones import to_canonical_instant


class BookingStage(str, Enum):
    RECEIVED = "received"
    DOCTOR_RESOLVED = "doctor_resolved"
    PATIENT_RESOLVED = "patient_resolved"
    TIMES_NORMALIZED = "times_normalized"
    VALIDATED = "validated"
    CONFLICT_CHECKED = "conflict_checked"
    PERSISTED = "persisted"


class VisitBookingService:
    """
    Service for booking visits.

    Missing doctors and patients are reported before malformed time
    ranges. Every failure leaves the store untouched.
    """

    def __init__(self, repository: ClinicRepository):
        self._repository = repository

    async def book_visit(
        self,
        doctor_id: int,
        patient_id: int,
        raw_start: str,
        raw_end: str,
    ) -> int:
        """
        Book a visit.

        Args:
            doctor_id: Doctor to book with
            patient_id: Patient the visit is for
            raw_start: ISO-8601 start with UTC offset
            raw_end: ISO-8601 end with UTC offset

        Returns:
            The new visit id

        Raises:
            DoctorNotFound, PatientNotFound: unknown ids
            InvalidTimestamp, UnknownTimezone, InvalidTimeRange: bad times
            SchedulingConflict: the doctor already has an overlapping visit
            PersistenceFailure: the store failed
        """
        self._advance(BookingStage.RECEIVED, doctor_id, patient_id)

        doctor = await self._resolve_doctor(doctor_id)
        self._advance(BookingStage.DOCTOR_RESOLVED, doctor_id, patient_id)

        patient = await self._resolve_patient(patient_id)
        self._advance(BookingStage.PATIENT_RESOLVED, doctor_id, patient_id)

        start = to_canonical_instant(raw_start, doctor.timezone)
        end = to_canonical_instant(raw_end, doctor.timezone)
        self._advance(BookingStage.TIMES_NORMALIZED, doctor_id, patient_id)

        if start >= end:
            logger.warning(f"Rejected visit for doctor {doctor_id}: start {raw_start} is not before end {raw_end}")
            raise InvalidTimeRange()
        self._advance(BookingStage.VALIDATED, doctor_id, patient_id)

        visit_id = await self._check_and_persist(doctor, patient, start, end)
        self._advance(BookingStage.PERSISTED, doctor_id, patient_id)

        logger.info(
            f"Booked visit {visit_id}: patient {patient.full_name} with Dr. {doctor.full_name}, "
            f"{start.isoformat()} - {end.isoformat()} ({doctor.timezone})"
        )
        return visit_id

    async def _resolve_doctor(self, doctor_id: int) -> Doctor:
        doctor = await self._repository.find_doctor_by_id(doctor_id)
        if doctor is None:
            logger.warning(f"Doctor {doctor_id} not found")
            raise DoctorNotFound(doctor_id)
        return doctor

    async def _resolve_patient(self, patient_id: int) -> Patient:
        patient = await self._repository.find_patient_by_id(patient_id)
        if patient is None:
            logger.warning(f"Patient {patient_id} not found")
            raise PatientNotFound(patient_id)
        return patient

    async def _check_and_persist(
        self, doctor: Doctor, patient: Patient, start: datetime, end: datetime
    ) -> int:
        try:
            async with self._repository.booking_transaction(doctor.id) as transaction:
                if await ConflictChecker(transaction).has_conflict(doctor.id, start, end):
                    logger.warning(
                        f"Scheduling conflict for doctor {doctor.id} at "
                        f"[{start.isoformat()}, {end.isoformat()})"
                    )
                    raise SchedulingConflict(doctor.id)
                self._advance(BookingStage.CONFLICT_CHECKED, doctor.id, patient.id)
                return await transaction.insert_visit(doctor.id, patient.id, start, end)
        except MeditrackError:
            raise
        except Exception as e:
            logger.error(f"Booking error for doctor {doctor.id}: {e}")
            raise PersistenceFailure("Could not store the visit") from e

    @staticmethod
    def _advance(stage: BookingStage, doctor_id: int, patient_id: int) -> None:
        logger.debug(f"Booking doctor={doctor_id} patient={patient_id}: {stage.value}")
