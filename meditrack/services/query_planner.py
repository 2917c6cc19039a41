"""
Patient query planning.

Turns raw listing parameters into a query object. The doctor filter
decides which query shape runs against the repository; both shapes
return rows the aggregator handles identically.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Tuple

from meditrack.config import get_settings
from meditrack.exceptions import InvalidPagination
from meditrack.models import PatientPage
from meditrack.repositories.base import ClinicRepository

# Largest OFFSET + LIMIT a database accepts (signed 64-bit integer)
MAX_ROW_POSITION = 2**63 - 1


class PatientQuery(ABC):
    """A planned, paginated patient listing query."""

    def __init__(self, search: Optional[str], offset: int, limit: int):
        self.search = search
        self.offset = offset
        self.limit = limit

    @abstractmethod
    async def execute(self, repository: ClinicRepository) -> PatientPage:
        ...

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and vars(self) == vars(other)

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value!r}" for key, value in vars(self).items())
        return f"{type(self).__name__}({fields})"


class AllPatientsQuery(PatientQuery):
    async def execute(self, repository: ClinicRepository) -> PatientPage:
        return await repository.find_all_patients_with_visits(self.search, self.offset, self.limit)


class DoctorFilteredPatientsQuery(PatientQuery):
    def __init__(
        self, search: Optional[str], doctor_ids: Tuple[int, ...], offset: int, limit: int
    ):
        super().__init__(search, offset, limit)
        self.doctor_ids = doctor_ids

    async def execute(self, repository: ClinicRepository) -> PatientPage:
        return await repository.find_patients_with_visits_by_doctors(
            self.search, self.doctor_ids, self.offset, self.limit
        )


class PatientQueryPlanner:
    """
    Validates pagination and picks the query shape.

    Pagination policy: `page` must be >= 0 and `size` within
    1..max_page_size, and the page must end within a 64-bit row
    position; anything else is rejected rather than clamped.
    """

    def __init__(self, default_page_size: Optional[int] = None, max_page_size: Optional[int] = None):
        settings = get_settings()
        self.default_page_size = default_page_size or settings.default_page_size
        self.max_page_size = max_page_size or settings.max_page_size

    def plan(
        self,
        page: Optional[int] = None,
        size: Optional[int] = None,
        search: Optional[str] = None,
        doctor_ids: Optional[Iterable[int]] = None,
    ) -> PatientQuery:
        page = 0 if page is None else page
        size = self.default_page_size if size is None else size

        if page < 0:
            raise InvalidPagination(f"page must be >= 0, got {page}")
        if size < 1 or size > self.max_page_size:
            raise InvalidPagination(f"size must be between 1 and {self.max_page_size}, got {size}")

        search = search.strip() if search else None
        search = search or None

        offset = page * size
        if offset + size > MAX_ROW_POSITION:
            raise InvalidPagination(f"page {page} of size {size} is beyond the last addressable row")

        unique_doctor_ids = tuple(dict.fromkeys(doctor_ids or ()))
        if not unique_doctor_ids:
            return AllPatientsQuery(search, offset, size)
        return DoctorFilteredPatientsQuery(search, unique_doctor_ids, offset, size)
