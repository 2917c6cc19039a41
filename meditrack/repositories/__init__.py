"""
Data-access layer for the MediTrack scheduling service.
"""

from .base import BookingTransaction, ClinicRepository
from .memory import InMemoryClinicRepository
from .sql import SqlClinicRepository

__all__ = [
    "BookingTransaction",
    "ClinicRepository",
    "InMemoryClinicRepository",
    "SqlClinicRepository",
]
