"""
Shared pytest fixtures.
"""

import pytest

from meditrack.models import Doctor, Patient
from meditrack.repositories import InMemoryClinicRepository
from meditrack.services import PatientListingService, PatientQueryPlanner, VisitBookingService


@pytest.fixture
def store() -> InMemoryClinicRepository:
    """In-memory store loaded with the sample clinic."""
    repository = InMemoryClinicRepository()
    repository.load_sample_data()
    return repository


@pytest.fixture
def empty_store() -> InMemoryClinicRepository:
    """In-memory store with a doctor and a patient but no visits."""
    repository = InMemoryClinicRepository()
    repository.add_doctor(
        Doctor(id=1, first_name="John", last_name="Doe", timezone="America/New_York")
    )
    repository.add_patient(Patient(id=1, first_name="Jane", last_name="Doe"))
    return repository


@pytest.fixture
def booking_service(store) -> VisitBookingService:
    return VisitBookingService(store)


@pytest.fixture
def listing_service(store) -> PatientListingService:
    return PatientListingService(
        store, planner=PatientQueryPlanner(default_page_size=20, max_page_size=100)
    )
