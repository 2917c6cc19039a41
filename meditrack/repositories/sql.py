"""
SQLAlchemy (async) clinic store.

Bookings run in one database transaction that locks the doctor row
(SELECT ... FOR UPDATE) before counting overlaps and inserting. A
per-doctor asyncio lock additionally serializes bookings inside this
process, which is what protects SQLite where FOR UPDATE is a no-op.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy import String, and_, distinct, event, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from meditrack.exceptions import PersistenceFailure
from meditrack.models import Doctor, Patient, PatientPage, PatientVisitRow
from meditrack.repositories.base import BookingTransaction, ClinicRepository
from meditrack.repositories.tables import Base, DoctorTable, PatientTable, VisitTable


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    # SQLite's built-in lower() only folds ASCII
    dbapi_connection.create_function("lower", 1, _unicode_lower)


class _SqlBookingTransaction(BookingTransaction):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def count_overlapping_visits(
        self, doctor_id: int, start: datetime, end: datetime
    ) -> int:
        stmt = select(func.count(VisitTable.id)).where(
            VisitTable.doctor_id == doctor_id,
            VisitTable.start_at < end,
            VisitTable.end_at > start,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def insert_visit(
        self, doctor_id: int, patient_id: int, start: datetime, end: datetime
    ) -> int:
        visit = VisitTable(start_at=start, end_at=end, doctor_id=doctor_id, patient_id=patient_id)
        self._session.add(visit)
        await self._session.flush()
        return visit.id


class SqlClinicRepository(ClinicRepository):
    """
    Async repository over doctors, patients and visits tables.

    Usage:
        repository = SqlClinicRepository("sqlite+aiosqlite:///./meditrack.db")
        await repository.create_schema()
        doctor = await repository.find_doctor_by_id(1)
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        echo: bool = False,
        engine: Optional[AsyncEngine] = None,
    ):
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = create_async_engine(database_url, echo=echo, future=True, pool_pre_ping=True)
        self._engine = engine
        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _register_sqlite_functions)
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._doctor_locks: Dict[int, asyncio.Lock] = {}

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session inside a transaction; store errors become PersistenceFailure."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise PersistenceFailure("The clinic database is unavailable") from e

    # =========================================================================
    # Schema and reference data
    # =========================================================================

    async def create_schema(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create schema: {e}")
            raise PersistenceFailure("Could not create the clinic schema") from e

    async def seed(
        self,
        doctors: Iterable[Doctor],
        patients: Iterable[Patient],
        visits: Iterable[dict],
    ) -> bool:
        """Insert reference data into an empty database. Returns False if data already exists."""
        async with self._session() as session:
            existing = await session.execute(select(func.count(DoctorTable.id)))
            if existing.scalar_one() > 0:
                return False
            session.add_all(DoctorTable(**doctor.model_dump()) for doctor in doctors)
            session.add_all(PatientTable(**patient.model_dump()) for patient in patients)
            await session.flush()
            session.add_all(
                VisitTable(
                    start_at=visit["start"],
                    end_at=visit["end"],
                    doctor_id=visit["doctor_id"],
                    patient_id=visit["patient_id"],
                )
                for visit in visits
            )
        logger.info("Seeded clinic database with reference data")
        return True

    async def dispose(self) -> None:
        await self._engine.dispose()

    # =========================================================================
    # Lookups and bookings
    # =========================================================================

    async def find_doctor_by_id(self, doctor_id: int) -> Optional[Doctor]:
        async with self._session() as session:
            row = await session.get(DoctorTable, doctor_id)
            return Doctor.model_validate(row, from_attributes=True) if row else None

    async def find_patient_by_id(self, patient_id: int) -> Optional[Patient]:
        async with self._session() as session:
            row = await session.get(PatientTable, patient_id)
            return Patient.model_validate(row, from_attributes=True) if row else None

    @asynccontextmanager
    async def booking_transaction(self, doctor_id: int) -> AsyncIterator[BookingTransaction]:
        lock = self._doctor_locks.setdefault(doctor_id, asyncio.Lock())
        async with lock:
            async with self._session() as session:
                await session.execute(
                    select(DoctorTable.id).where(DoctorTable.id == doctor_id).with_for_update()
                )
                yield _SqlBookingTransaction(session)

    # =========================================================================
    # Patient listing
    # =========================================================================

    async def find_all_patients_with_visits(
        self, search: Optional[str], offset: int, limit: int
    ) -> PatientPage:
        return await self._find_patients(search, None, offset, limit)

    async def find_patients_with_visits_by_doctors(
        self,
        search: Optional[str],
        doctor_ids: Sequence[int],
        offset: int,
        limit: int,
    ) -> PatientPage:
        return await self._find_patients(search, list(doctor_ids), offset, limit)

    def _matching_patient_ids(self, search: Optional[str], doctor_ids: Optional[List[int]]):
        stmt = select(PatientTable.id)
        if search:
            full_name = func.lower(
                PatientTable.first_name + " " + PatientTable.last_name, type_=String
            )
            stmt = stmt.where(full_name.contains(search.lower(), autoescape=True))
        if doctor_ids is not None:
            stmt = stmt.where(
                select(VisitTable.id)
                .where(
                    VisitTable.patient_id == PatientTable.id,
                    VisitTable.doctor_id.in_(doctor_ids),
                )
                .exists()
            )
        return stmt

    async def _find_patients(
        self,
        search: Optional[str],
        doctor_ids: Optional[List[int]],
        offset: int,
        limit: int,
    ) -> PatientPage:
        matching = self._matching_patient_ids(search, doctor_ids)

        async with self._session() as session:
            total_result = await session.execute(
                select(func.count()).select_from(matching.subquery())
            )
            total = int(total_result.scalar_one())

            page_result = await session.execute(
                matching.order_by(PatientTable.id).offset(offset).limit(limit)
            )
            page_ids = list(page_result.scalars().all())
            if not page_ids:
                return PatientPage(rows=[], total=total)

            result = await session.execute(self._rows_statement(page_ids, doctor_ids))
            rows = [PatientVisitRow.model_validate(dict(row._mapping)) for row in result]

        return PatientPage(rows=rows, total=total)

    def _rows_statement(self, page_ids: List[int], doctor_ids: Optional[List[int]]):
        """One row per (patient, doctor) with the pair's latest visit and the doctor's patient count."""
        rank = (
            func.row_number()
            .over(
                partition_by=(VisitTable.patient_id, VisitTable.doctor_id),
                order_by=(VisitTable.start_at.desc(), VisitTable.id.desc()),
            )
            .label("visit_rank")
        )
        latest_stmt = select(
            VisitTable.id,
            VisitTable.patient_id,
            VisitTable.doctor_id,
            VisitTable.start_at,
            VisitTable.end_at,
            rank,
        ).where(VisitTable.patient_id.in_(page_ids))
        if doctor_ids is not None:
            latest_stmt = latest_stmt.where(VisitTable.doctor_id.in_(doctor_ids))
        latest = latest_stmt.subquery("latest")

        doctor_counts = (
            select(
                VisitTable.doctor_id,
                func.count(distinct(VisitTable.patient_id)).label("patient_count"),
            )
            .group_by(VisitTable.doctor_id)
            .subquery("doctor_counts")
        )

        return (
            select(
                PatientTable.id.label("patient_id"),
                PatientTable.first_name.label("patient_first_name"),
                PatientTable.last_name.label("patient_last_name"),
                latest.c.id.label("visit_id"),
                latest.c.start_at.label("visit_start"),
                latest.c.end_at.label("visit_end"),
                DoctorTable.id.label("doctor_id"),
                DoctorTable.first_name.label("doctor_first_name"),
                DoctorTable.last_name.label("doctor_last_name"),
                DoctorTable.timezone.label("doctor_timezone"),
                doctor_counts.c.patient_count.label("doctor_patient_count"),
            )
            .select_from(PatientTable)
            .outerjoin(latest, and_(latest.c.patient_id == PatientTable.id, latest.c.visit_rank == 1))
            .outerjoin(DoctorTable, DoctorTable.id == latest.c.doctor_id)
            .outerjoin(doctor_counts, doctor_counts.c.doctor_id == latest.c.doctor_id)
            .where(PatientTable.id.in_(page_ids))
            .order_by(PatientTable.id, latest.c.start_at.desc(), DoctorTable.id)
        )
