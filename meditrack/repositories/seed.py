"""
Sample reference data for development databases and the in-memory store.
"""

from datetime import datetime, timezone
from typing import List, Tuple

from meditrack.config import SAMPLE_DOCTORS, SAMPLE_PATIENTS, SAMPLE_VISITS
from meditrack.models import Doctor, Patient


def build_sample_data() -> Tuple[List[Doctor], List[Patient], List[dict]]:
    """
    Build the sample doctors, patients and visits.

    Visits are returned as dicts with UTC `start`/`end` instants, ready
    to pass to a repository's `seed()`.
    """
    doctors = [Doctor(**doctor) for doctor in SAMPLE_DOCTORS]
    patients = [Patient(**patient) for patient in SAMPLE_PATIENTS]
    visits = [
        {
            "doctor_id": visit["doctor_id"],
            "patient_id": visit["patient_id"],
            "start": datetime.fromisoformat(visit["start"]).astimezone(timezone.utc),
            "end": datetime.fromisoformat(visit["end"]).astimezone(timezone.utc),
        }
        for visit in SAMPLE_VISITS
    ]
    return doctors, patients, visits
