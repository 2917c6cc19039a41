"""
Error taxonomy for the MediTrack scheduling service.

Every failure raised by the booking and listing workflows derives from
MeditrackError and carries a stable error code, which the API layer maps
to an HTTP status.
"""

from typing import Optional


class MeditrackError(Exception):
    """Base class for all service errors."""

    error_code: str = "MEDITRACK_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


# ============================================================================
# Not Found
# ============================================================================


class NotFoundError(MeditrackError):
    """A referenced doctor or patient does not exist."""

    error_code = "NOT_FOUND"


class DoctorNotFound(NotFoundError):
    error_code = "DOCTOR_NOT_FOUND"

    def __init__(self, doctor_id: int):
        super().__init__("Doctor not found")
        self.doctor_id = doctor_id


class PatientNotFound(NotFoundError):
    error_code = "PATIENT_NOT_FOUND"

    def __init__(self, patient_id: int):
        super().__init__("Patient not found")
        self.patient_id = patient_id


# ============================================================================
# Validation
# ============================================================================


class ValidationError(MeditrackError):
    """Input is well-formed for the transport but rejected by business rules."""

    error_code = "VALIDATION_ERROR"


class InvalidTimestamp(ValidationError):
    error_code = "INVALID_TIMESTAMP"

    def __init__(self, raw: str):
        super().__init__(
            f"Invalid timestamp '{raw}': expected ISO-8601 with a UTC offset"
        )
        self.raw = raw


class UnknownTimezone(ValidationError):
    error_code = "UNKNOWN_TIMEZONE"

    def __init__(self, zone: str):
        super().__init__(f"Unknown timezone '{zone}'")
        self.zone = zone


class InvalidTimeRange(ValidationError):
    error_code = "INVALID_TIME_RANGE"

    def __init__(self):
        super().__init__("Start time must be before end time")


class InvalidPagination(ValidationError):
    error_code = "INVALID_PAGINATION"


class InvalidDoctorFilter(ValidationError):
    error_code = "INVALID_DOCTOR_FILTER"


# ============================================================================
# Scheduling / Persistence
# ============================================================================


class SchedulingConflict(MeditrackError):
    error_code = "SCHEDULING_CONFLICT"

    def __init__(self, doctor_id: int):
        super().__init__("Doctor already has a visit scheduled at this time")
        self.doctor_id = doctor_id


class PersistenceFailure(MeditrackError):
    """The underlying store failed; the request is reported as failed, never retried here."""

    error_code = "PERSISTENCE_FAILURE"
