"""
Shared pytest fixtures.

Provides:
- CSV text for a short flight with a duplicate, an outlier and a bad cell
- Parsed datasets built from that text
- FastAPI TestClient with a fresh analysis session per test
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from cansat.ingestion.dataset import Dataset
from cansat.ingestion.parser import parse_csv_text

# =============================================================================
# Flight CSV fixtures
# =============================================================================
FLIGHT_HEADER = (
    "Tiempo_ms,Temperatura_C,Humedad_%,Presion_hPa,Resistencia_kOhms,"
    "Accel_X_m_s2,Accel_Y_m_s2,Accel_Z_m_s2,Gyro_X_deg_s,Gyro_Y_deg_s,Gyro_Z_deg_s,"
    "Roll_deg,Pitch_deg,Altitud_m"
)

# Row 2 duplicates row 1's timestamp, row 3 is 999 °C, row 4 has a bad altitude
FLIGHT_ROWS = [
    "0,20.5,45,950,350,0.1,0.2,9.8,1,2,3,0.5,0.3,600",
    "100,20.4,45,949,250,0.1,0.2,9.8,1,2,3,0.5,0.3,610",
    "100,20.4,45,949,250,0.1,0.2,9.8,1,2,3,0.5,0.3,610",
    "200,999,45,948,150,0.1,0.2,9.8,1,2,3,0.5,0.3,620",
    "300,20.1,46,947,75,0.1,0.2,9.8,1,2,3,0.5,0.3,abc",
    "400,20.0,46,946,10,0.1,0.2,9.8,1,2,3,0.5,0.3,640",
]

FLIGHT_CSV = "\n".join([FLIGHT_HEADER, *FLIGHT_ROWS]) + "\n"


def make_dataset(headers: list[str], rows: list[list[str]]) -> Dataset:
    """Build a dataset from column lists without going through the parser."""
    return Dataset.from_rows(headers, [dict(zip(headers, row)) for row in rows])


@pytest.fixture()
def flight_csv() -> str:
    return FLIGHT_CSV


@pytest.fixture()
def flight_dataset() -> Dataset:
    result = parse_csv_text(FLIGHT_CSV, source_name="flight.csv")
    assert result.success is True
    return result.dataset


# =============================================================================
# FastAPI TestClient
# =============================================================================
@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    """
    FastAPI TestClient running the app lifespan, so every test starts with
    an empty analysis session.
    """
    from cansat.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def loaded_client(client: TestClient) -> TestClient:
    """TestClient with the flight fixture already uploaded."""
    resp = client.post(
        "/api/v1/flight/upload",
        files={"file": ("flight.csv", FLIGHT_CSV.encode("utf-8"), "text/csv")},
    )
    assert resp.status_code == 200
    return client
