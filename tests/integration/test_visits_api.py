"""
Integration tests for the MediTrack API.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from meditrack.api.server import create_app, parse_doctor_ids
from meditrack.exceptions import InvalidDoctorFilter


@pytest.fixture
async def client(store):
    """Create an async test client over the sample clinic."""
    app = create_app(repository=store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def visit_payload(**overrides) -> dict:
    payload = {
        "start": "2024-06-05T10:00:00-04:00",
        "end": "2024-06-05T11:00:00-04:00",
        "patientId": 1,
        "doctorId": 1,
    }
    payload.update(overrides)
    return payload


class TestHealthEndpoint:
    """Test health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Health endpoint should return OK."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCreateVisitEndpoint:
    """Test visit booking endpoint."""

    @pytest.mark.asyncio
    async def test_create_visit(self, client, store):
        """Successful booking returns 200 with an empty body."""
        before = len(store.visits)
        response = await client.post("/api/visits", json=visit_payload())

        assert response.status_code == 200
        assert response.content == b""
        assert len(store.visits) == before + 1

    @pytest.mark.asyncio
    async def test_overlapping_visit(self, client, store):
        """Doctor 1 already has 2024-06-01 10:00-11:00 New York time."""
        before = len(store.visits)
        response = await client.post(
            "/api/visits",
            json=visit_payload(
                start="2024-06-01T10:30:00-04:00",
                end="2024-06-01T11:30:00-04:00",
                patientId=2,
            ),
        )

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "SCHEDULING_CONFLICT"
        assert data["message"] == "Doctor already has a visit scheduled at this time"
        assert len(store.visits) == before

    @pytest.mark.asyncio
    async def test_touching_visit_allowed(self, client):
        response = await client.post(
            "/api/visits",
            json=visit_payload(start="2024-06-01T11:00:00-04:00", end="2024-06-01T12:00:00-04:00"),
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, client):
        response = await client.post("/api/visits", json=visit_payload(doctorId=999))
        assert response.status_code == 404
        assert response.json()["error_code"] == "DOCTOR_NOT_FOUND"
        assert response.json()["message"] == "Doctor not found"

    @pytest.mark.asyncio
    async def test_unknown_patient(self, client):
        response = await client.post("/api/visits", json=visit_payload(patientId=999))
        assert response.status_code == 404
        assert response.json()["error_code"] == "PATIENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_start_after_end(self, client, store):
        before = len(store.visits)
        response = await client.post(
            "/api/visits",
            json=visit_payload(start="2024-06-05T12:00:00-04:00", end="2024-06-05T11:00:00-04:00"),
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TIME_RANGE"
        assert len(store.visits) == before

    @pytest.mark.asyncio
    async def test_timestamp_without_offset(self, client):
        response = await client.post(
            "/api/visits", json=visit_payload(start="2024-06-05T10:00:00")
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TIMESTAMP"

    @pytest.mark.asyncio
    async def test_missing_field(self, client):
        payload = visit_payload()
        del payload["doctorId"]
        response = await client.post("/api/visits", json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_blank_timestamp(self, client):
        response = await client.post("/api/visits", json=visit_payload(end="  "))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_booking_shows_in_listing(self, client):
        response = await client.post(
            "/api/visits",
            json=visit_payload(
                start="2024-06-20T09:00:00+00:00", end="2024-06-20T09:30:00+00:00", patientId=5
            ),
        )
        assert response.status_code == 200

        listing = await client.get("/api/patients", params={"search": "miller"})
        sarah = listing.json()["data"][0]
        assert sarah["lastVisits"] == [
            {
                "start": "2024-06-20T05:00:00-04:00",
                "end": "2024-06-20T05:30:00-04:00",
                "doctor": {"firstName": "John", "lastName": "Doe", "totalPatients": 4},
            }
        ]


class TestListPatientsEndpoint:
    """Test patient listing endpoint."""

    @pytest.mark.asyncio
    async def test_list_patients(self, client):
        response = await client.get("/api/patients")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 5
        assert [p["firstName"] for p in data["data"]] == [
            "Jane",
            "Michael",
            "Emily",
            "David",
            "Sarah",
        ]
        jane = data["data"][0]
        assert jane["lastName"] == "Doe"
        assert jane["lastVisits"][0] == {
            "start": "2024-06-01T10:00:00-04:00",
            "end": "2024-06-01T11:00:00-04:00",
            "doctor": {"firstName": "John", "lastName": "Doe", "totalPatients": 3},
        }
        assert jane["lastVisits"][1]["start"] == "2024-06-01T15:00:00+01:00"
        assert data["data"][4]["lastVisits"] == []

    @pytest.mark.asyncio
    async def test_pagination(self, client):
        response = await client.get("/api/patients", params={"page": 1, "size": 2})
        data = response.json()
        assert [p["firstName"] for p in data["data"]] == ["Emily", "David"]
        assert data["count"] == 5

    @pytest.mark.asyncio
    async def test_search(self, client):
        response = await client.get("/api/patients", params={"search": "doe"})
        data = response.json()
        assert data["count"] == 1
        assert data["data"][0]["firstName"] == "Jane"

    @pytest.mark.asyncio
    async def test_doctor_filter(self, client):
        response = await client.get("/api/patients", params={"doctorIds": "1,2"})
        data = response.json()
        assert data["count"] == 4
        michael = data["data"][1]
        assert [v["doctor"]["firstName"] for v in michael["lastVisits"]] == ["John"]

    @pytest.mark.asyncio
    async def test_blank_doctor_filter_ignored(self, client):
        response = await client.get("/api/patients", params={"doctorIds": ""})
        assert response.json()["count"] == 5

    @pytest.mark.asyncio
    async def test_invalid_doctor_filter(self, client):
        response = await client.get("/api/patients", params={"doctorIds": "1,abc"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_DOCTOR_FILTER"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params", [{"page": -1}, {"size": 0}, {"size": 101}, {"page": 10**18, "size": 100}]
    )
    async def test_invalid_pagination(self, client, params):
        response = await client.get("/api/patients", params=params)
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PAGINATION"

    @pytest.mark.asyncio
    async def test_non_numeric_page(self, client):
        response = await client.get("/api/patients", params={"page": "first"})
        assert response.status_code == 422


class TestParseDoctorIds:
    """Test the doctorIds query parameter parser."""

    def test_comma_separated(self):
        assert parse_doctor_ids("1, 2,3") == [1, 2, 3]

    def test_trailing_comma(self):
        assert parse_doctor_ids("1,") == [1]

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_blank(self, raw):
        assert parse_doctor_ids(raw) is None

    def test_not_a_number(self):
        with pytest.raises(InvalidDoctorFilter):
            parse_doctor_ids("one")
