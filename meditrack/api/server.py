"""
MediTrack API Server.

A FastAPI application exposing visit booking and the patient listing.
The transport only parses requests and serializes responses; scheduling
rules live in the services layer.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from meditrack.config import Settings, configure_logging, get_settings
from meditrack.exceptions import (
    InvalidDoctorFilter,
    MeditrackError,
    NotFoundError,
    PersistenceFailure,
    SchedulingConflict,
    ValidationError,
)
from meditrack.models import PatientsListResponse
from meditrack.repositories import ClinicRepository, InMemoryClinicRepository, SqlClinicRepository
from meditrack.repositories.seed import build_sample_data
from meditrack.services import PatientListingService, VisitBookingService

# ============================================================================
# Request Models
# ============================================================================


class CreateVisitRequest(BaseModel):
    """Request to book a visit."""

    start: str = Field(description="Visit start, ISO-8601 with UTC offset")
    end: str = Field(description="Visit end, ISO-8601 with UTC offset")
    patient_id: int = Field(alias="patientId")
    doctor_id: int = Field(alias="doctorId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("start", "end")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


def parse_doctor_ids(raw: Optional[str]) -> Optional[List[int]]:
    """Parse a comma-separated doctor id list; blank means no filter."""
    if raw is None or not raw.strip():
        return None
    try:
        return [int(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise InvalidDoctorFilter(f"doctorIds must be a comma-separated list of integers, got '{raw}'") from e


# ============================================================================
# Error Handling
# ============================================================================


def error_status(exc: MeditrackError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, SchedulingConflict):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, PersistenceFailure):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def meditrack_exception_handler(request: Request, exc: MeditrackError) -> JSONResponse:
    """Report service errors with their error code."""
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.error_code}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": exc.message, "error_code": exc.error_code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MeditrackError, meditrack_exception_handler)


# ============================================================================
# Dependencies
# ============================================================================


def get_repository(request: Request) -> ClinicRepository:
    return request.app.state.repository


def get_booking_service(
    repository: ClinicRepository = Depends(get_repository),
) -> VisitBookingService:
    return VisitBookingService(repository)


def get_listing_service(
    repository: ClinicRepository = Depends(get_repository),
) -> PatientListingService:
    return PatientListingService(repository)


def build_repository(settings: Settings) -> ClinicRepository:
    """In-memory store unless a database URL is configured."""
    if settings.database_url:
        return SqlClinicRepository(settings.database_url, echo=settings.database_echo)
    return InMemoryClinicRepository()


async def prepare_repository(repository: ClinicRepository, settings: Settings) -> None:
    if isinstance(repository, SqlClinicRepository):
        await repository.create_schema()
        if settings.seed_sample_data:
            await repository.seed(*build_sample_data())
    elif isinstance(repository, InMemoryClinicRepository) and settings.seed_sample_data:
        repository.load_sample_data()


# ============================================================================
# API Endpoints
# ============================================================================

router = APIRouter(prefix="/api")


@router.post("/visits", status_code=status.HTTP_200_OK, response_class=Response)
async def create_visit(
    payload: CreateVisitRequest,
    booking_service: VisitBookingService = Depends(get_booking_service),
):
    """Book a visit; responds with an empty body on success."""
    await booking_service.book_visit(
        doctor_id=payload.doctor_id,
        patient_id=payload.patient_id,
        raw_start=payload.start,
        raw_end=payload.end,
    )
    return Response(status_code=status.HTTP_200_OK)


@router.get("/patients", response_model=PatientsListResponse)
async def list_patients(
    page: Optional[int] = Query(default=None, description="Zero-based page number"),
    size: Optional[int] = Query(default=None, description="Patients per page"),
    search: Optional[str] = Query(default=None, description="Substring of 'first last' name"),
    doctor_ids: Optional[str] = Query(
        default=None, alias="doctorIds", description="Comma-separated doctor ids"
    ),
    listing_service: PatientListingService = Depends(get_listing_service),
):
    """
    List patients with their latest visit per doctor.

    Visit times are shown in the timezone of the doctor of each visit.
    """
    return await listing_service.list_patients(
        page=page,
        size=size,
        search=search,
        doctor_ids=parse_doctor_ids(doctor_ids),
    )


# ============================================================================
# FastAPI Application
# ============================================================================


def create_app(repository: Optional[ClinicRepository] = None) -> FastAPI:
    """
    Build the application.

    An injected repository is used as-is; otherwise one is built from
    settings and prepared (schema, sample data) during startup.
    """
    settings = get_settings()
    owns_repository = repository is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        configure_logging(settings.log_level)
        logger.info("Starting MediTrack API Server")
        if owns_repository:
            await prepare_repository(app.state.repository, settings)
        yield
        logger.info("Shutting down MediTrack API Server")
        if owns_repository:
            await app.state.repository.dispose()

    app = FastAPI(
        title="MediTrack API",
        description="API for booking visits and listing patients with their latest visits",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.repository = build_repository(settings) if owns_repository else repository

    # CORS middleware for cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    app.include_router(router)
    return app


app = create_app()


# ============================================================================
# Run Server
# ============================================================================


def bookings_serialized_across_workers(settings: Settings) -> bool:
    """Only PostgreSQL row locks hold across worker processes; per-doctor locks are per process."""
    if settings.api_workers <= 1:
        return True
    return (settings.database_url or "").startswith("postgresql")


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the MediTrack API server."""
    import uvicorn

    settings = get_settings()
    if not bookings_serialized_across_workers(settings):
        logger.warning(
            f"API_WORKERS={settings.api_workers} without PostgreSQL: each worker has its own "
            f"store and booking locks, so overlapping visits can be booked from different workers"
        )
    uvicorn.run(
        "meditrack.api.server:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=False,
        workers=settings.api_workers,
        loop="uvloop",  # High-performance event loop
        http="httptools",  # Fast HTTP parser
    )


if __name__ == "__main__":
    run_server()
