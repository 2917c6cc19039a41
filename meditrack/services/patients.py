"""
Patient Listing Service - paginated patients with their latest visit per doctor.
"""

from typing import Optional, Sequence

from loguru import logger

from meditrack.models import PatientsListResponse
from meditrack.repositories.base import ClinicRepository
from meditrack.services.aggregation import RowAggregator
from meditrack.services.assembler import ResponseAssembler
from meditrack.services.query_planner import PatientQueryPlanner


class PatientListingService:
    """Plans the query, runs it, and folds the rows into the listing response."""

    def __init__(
        self,
        repository: ClinicRepository,
        planner: Optional[PatientQueryPlanner] = None,
    ):
        self._repository = repository
        self._planner = planner or PatientQueryPlanner()
        self._aggregator = RowAggregator()
        self._assembler = ResponseAssembler()

    async def list_patients(
        self,
        page: Optional[int] = None,
        size: Optional[int] = None,
        search: Optional[str] = None,
        doctor_ids: Optional[Sequence[int]] = None,
    ) -> PatientsListResponse:
        query = self._planner.plan(page, size, search, doctor_ids)
        result = await query.execute(self._repository)

        records = self._aggregator.aggregate(result.rows)
        logger.debug(
            f"{type(query).__name__}: {len(result.rows)} rows -> "
            f"{len(records)} patients (total {result.total})"
        )
        return self._assembler.assemble(records, result.total)
