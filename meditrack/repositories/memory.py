"""
In-memory clinic store.

Keeps doctors, patients and visits in dictionaries and serializes
bookings per doctor with asyncio locks. Used for development and tests;
the SQLAlchemy store is the persistent alternative.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from meditrack.models import Doctor, Patient, PatientPage, PatientVisitRow, Visit
from meditrack.repositories.base import BookingTransaction, ClinicRepository
from meditrack.repositories.seed import build_sample_data


class _InMemoryBookingTransaction(BookingTransaction):
    """Booking unit of work; only valid while the owning doctor lock is held."""

    def __init__(self, store: "InMemoryClinicRepository"):
        self._store = store

    async def count_overlapping_visits(
        self, doctor_id: int, start: datetime, end: datetime
    ) -> int:
        return sum(
            1
            for visit in self._store.visits.values()
            if visit.doctor_id == doctor_id and visit.start < end and start < visit.end
        )

    async def insert_visit(
        self, doctor_id: int, patient_id: int, start: datetime, end: datetime
    ) -> int:
        return self._store.add_visit(doctor_id, patient_id, start, end)


class InMemoryClinicRepository(ClinicRepository):
    """
    Dictionary-backed repository with per-doctor booking locks.

    In production, this should be replaced with the SQLAlchemy store
    pointed at PostgreSQL.
    """

    def __init__(self):
        self._doctors: Dict[int, Doctor] = {}
        self._patients: Dict[int, Patient] = {}
        self._visits: Dict[int, Visit] = {}
        self._next_visit_id = 1
        self._doctor_locks: Dict[int, asyncio.Lock] = {}
        self._initialized = False

    # Public accessors for testing
    @property
    def doctors(self) -> Dict[int, Doctor]:
        """Access to doctors dictionary."""
        return self._doctors

    @property
    def patients(self) -> Dict[int, Patient]:
        """Access to patients dictionary."""
        return self._patients

    @property
    def visits(self) -> Dict[int, Visit]:
        """Access to visits dictionary."""
        return self._visits

    # =========================================================================
    # Reference data
    # =========================================================================

    def add_doctor(self, doctor: Doctor) -> None:
        self._doctors[doctor.id] = doctor

    def add_patient(self, patient: Patient) -> None:
        self._patients[patient.id] = patient

    def add_visit(
        self, doctor_id: int, patient_id: int, start: datetime, end: datetime
    ) -> int:
        """Store a visit without any checks and return its id."""
        visit = Visit(
            id=self._next_visit_id,
            start=start.astimezone(timezone.utc),
            end=end.astimezone(timezone.utc),
            doctor_id=doctor_id,
            patient_id=patient_id,
        )
        self._visits[visit.id] = visit
        self._next_visit_id += 1
        return visit.id

    def seed(
        self,
        doctors: Iterable[Doctor],
        patients: Iterable[Patient],
        visits: Iterable[dict],
    ) -> None:
        for doctor in doctors:
            self.add_doctor(doctor)
        for patient in patients:
            self.add_patient(patient)
        for visit in visits:
            self.add_visit(visit["doctor_id"], visit["patient_id"], visit["start"], visit["end"])

    def load_sample_data(self) -> None:
        """Initialize with sample clinic data."""
        if self._initialized:
            return
        self.seed(*build_sample_data())
        self._initialized = True
        logger.info(
            f"Initialized {len(self._doctors)} doctors, {len(self._patients)} patients, "
            f"{len(self._visits)} visits"
        )

    # =========================================================================
    # Lookups and bookings
    # =========================================================================

    async def find_doctor_by_id(self, doctor_id: int) -> Optional[Doctor]:
        return self._doctors.get(doctor_id)

    async def find_patient_by_id(self, patient_id: int) -> Optional[Patient]:
        return self._patients.get(patient_id)

    @asynccontextmanager
    async def booking_transaction(self, doctor_id: int) -> AsyncIterator[BookingTransaction]:
        lock = self._doctor_locks.setdefault(doctor_id, asyncio.Lock())
        async with lock:
            yield _InMemoryBookingTransaction(self)

    # =========================================================================
    # Patient listing
    # =========================================================================

    async def find_all_patients_with_visits(
        self, search: Optional[str], offset: int, limit: int
    ) -> PatientPage:
        return self._find_patients(search, None, offset, limit)

    async def find_patients_with_visits_by_doctors(
        self,
        search: Optional[str],
        doctor_ids: Sequence[int],
        offset: int,
        limit: int,
    ) -> PatientPage:
        return self._find_patients(search, set(doctor_ids), offset, limit)

    def _doctor_patient_counts(self) -> Dict[int, int]:
        patients_by_doctor: Dict[int, Set[int]] = {}
        for visit in self._visits.values():
            patients_by_doctor.setdefault(visit.doctor_id, set()).add(visit.patient_id)
        return {doctor_id: len(ids) for doctor_id, ids in patients_by_doctor.items()}

    def _latest_visits(self, patient_id: int, doctor_ids: Optional[Set[int]]) -> List[Visit]:
        """Most recent visit per doctor for a patient, most recent first."""
        latest: Dict[int, Visit] = {}
        for visit in self._visits.values():
            if visit.patient_id != patient_id:
                continue
            if doctor_ids is not None and visit.doctor_id not in doctor_ids:
                continue
            current = latest.get(visit.doctor_id)
            if current is None or (visit.start, visit.id) > (current.start, current.id):
                latest[visit.doctor_id] = visit
        return sorted(latest.values(), key=lambda v: (-v.start.timestamp(), v.doctor_id))

    def _find_patients(
        self,
        search: Optional[str],
        doctor_ids: Optional[Set[int]],
        offset: int,
        limit: int,
    ) -> PatientPage:
        needle = search.lower() if search else None

        visited: Dict[int, Set[int]] = {}
        for visit in self._visits.values():
            visited.setdefault(visit.patient_id, set()).add(visit.doctor_id)

        matching: List[Patient] = []
        for patient in sorted(self._patients.values(), key=lambda p: p.id):
            if needle and needle not in patient.full_name.lower():
                continue
            if doctor_ids is not None and not visited.get(patient.id, set()) & doctor_ids:
                continue
            matching.append(patient)

        counts = self._doctor_patient_counts()
        rows: List[PatientVisitRow] = []
        for patient in matching[offset : offset + limit]:
            visits = self._latest_visits(patient.id, doctor_ids)
            if not visits:
                rows.append(
                    PatientVisitRow(
                        patient_id=patient.id,
                        patient_first_name=patient.first_name,
                        patient_last_name=patient.last_name,
                    )
                )
                continue
            for visit in visits:
                doctor = self._doctors[visit.doctor_id]
                rows.append(
                    PatientVisitRow(
                        patient_id=patient.id,
                        patient_first_name=patient.first_name,
                        patient_last_name=patient.last_name,
                        visit_id=visit.id,
                        visit_start=visit.start,
                        visit_end=visit.end,
                        doctor_id=doctor.id,
                        doctor_first_name=doctor.first_name,
                        doctor_last_name=doctor.last_name,
                        doctor_timezone=doctor.timezone,
                        doctor_patient_count=counts.get(doctor.id, 0),
                    )
                )

        return PatientPage(rows=rows, total=len(matching))
