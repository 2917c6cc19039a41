"""
Data-access contract used by the booking and listing workflows.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncContextManager, Optional, Sequence

from meditrack.models import Doctor, Patient, PatientPage


class BookingTransaction(ABC):
    """
    Isolated unit of work for booking visits of one doctor.

    Everything done through a transaction is atomic with respect to other
    bookings for the same doctor: an overlap count followed by an insert
    cannot interleave with another booking's count and insert.
    """

    @abstractmethod
    async def count_overlapping_visits(
        self, doctor_id: int, start: datetime, end: datetime
    ) -> int:
        """Count the doctor's visits sharing any instant with [start, end)."""

    @abstractmethod
    async def insert_visit(
        self, doctor_id: int, patient_id: int, start: datetime, end: datetime
    ) -> int:
        """Store a visit and return its id."""


class ClinicRepository(ABC):
    """
    Storage of doctors, patients and visits.

    Patient listing methods return one row per (patient, doctor) pair with
    that pair's most recent visit, ordered by patient id, then visit start
    (most recent first), then doctor id. A patient without matching visits
    yields a single row with empty visit columns. `total` counts distinct
    matching patients over all pages.
    """

    @abstractmethod
    async def find_doctor_by_id(self, doctor_id: int) -> Optional[Doctor]:
        ...

    @abstractmethod
    async def find_patient_by_id(self, patient_id: int) -> Optional[Patient]:
        ...

    @abstractmethod
    def booking_transaction(self, doctor_id: int) -> AsyncContextManager[BookingTransaction]:
        """Open an isolated booking unit of work scoped to `doctor_id`."""

    @abstractmethod
    async def find_all_patients_with_visits(
        self, search: Optional[str], offset: int, limit: int
    ) -> PatientPage:
        """Page through every patient matching `search`."""

    @abstractmethod
    async def find_patients_with_visits_by_doctors(
        self,
        search: Optional[str],
        doctor_ids: Sequence[int],
        offset: int,
        limit: int,
    ) -> PatientPage:
        """
        Page through patients with at least one visit with a listed doctor.

        Only visits with the listed doctors are returned.
        """

    async def dispose(self) -> None:
        """Release held resources."""
