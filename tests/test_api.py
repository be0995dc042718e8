"""
API endpoint integration tests.

Tests the FastAPI flight endpoints through TestClient, with a fresh
analysis session per test (see conftest.client).
"""

from fastapi.testclient import TestClient

from cansat.config import settings

from conftest import FLIGHT_CSV

UPLOAD_URL = "/api/v1/flight/upload"


def _upload(client: TestClient, content: bytes, filename: str = "flight.csv"):
    return client.post(UPLOAD_URL, files={"file": (filename, content, "text/csv")})


# =========================================================================
# GET /health
# =========================================================================
class TestHealth:

    def test_health(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# =========================================================================
# POST /api/v1/flight/upload
# =========================================================================
class TestUpload:

    def test_upload_csv(self, client: TestClient):
        resp = _upload(client, FLIGHT_CSV.encode("utf-8"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["filename"] == "flight.csv"
        assert body["row_count"] == 6
        assert body["headers"][0] == "Tiempo_ms"
        assert body["missing_variables"] == []
        assert body["warnings"] == []

    def test_upload_reports_warnings(self, client: TestClient):
        resp = _upload(client, b"x,y\n1\n")
        assert resp.status_code == 200
        body = resp.json()
        assert body["warnings"][0]["code"] == "TooFewFields"
        assert "Tiempo_ms" in body["missing_variables"]

    def test_upload_rejects_bad_extension(self, client: TestClient):
        resp = _upload(client, b"a,b\n1,2\n", filename="flight.txt")
        assert resp.status_code == 400
        assert ".csv" in resp.json()["detail"]

    def test_upload_extension_case_insensitive(self, client: TestClient):
        resp = _upload(client, b"a,b\n1,2\n", filename="FLIGHT.CSV")
        assert resp.status_code == 200

    def test_upload_parse_failure(self, client: TestClient):
        resp = _upload(client, b"")
        assert resp.status_code == 400
        assert "header" in resp.json()["detail"]

    def test_upload_parse_failure_keeps_previous(self, client: TestClient):
        _upload(client, FLIGHT_CSV.encode("utf-8"))
        resp = _upload(client, b"\xff\xfe\xfa")
        assert resp.status_code == 400
        assert client.get("/api/v1/flight/headers").json()["headers"][0] == "Tiempo_ms"

    def test_upload_too_large(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_BYTES", 16)
        resp = _upload(client, FLIGHT_CSV.encode("utf-8"))
        assert resp.status_code == 413


# =========================================================================
# Out-of-order calls
# =========================================================================
class TestInputMissing:

    def test_headers_before_upload(self, client: TestClient):
        assert client.get("/api/v1/flight/headers").status_code == 409

    def test_clean_before_upload(self, client: TestClient):
        resp = client.post("/api/v1/flight/clean", json={})
        assert resp.status_code == 409
        assert "No data loaded" in resp.json()["detail"]

    def test_statistics_before_upload(self, client: TestClient):
        assert client.get("/api/v1/flight/statistics").status_code == 409

    def test_air_quality_before_upload(self, client: TestClient):
        assert client.get("/api/v1/flight/air-quality").status_code == 409

    def test_select_cleaned_before_clean(self, loaded_client: TestClient):
        resp = loaded_client.post("/api/v1/flight/dataset", json={"state": "cleaned"})
        assert resp.status_code == 409


# =========================================================================
# Headers, cleaning and dataset selection
# =========================================================================
class TestPipeline:

    def test_headers(self, loaded_client: TestClient):
        body = loaded_client.get("/api/v1/flight/headers").json()
        assert body["default_x"] == "Tiempo_ms"
        assert body["default_y"] is None
        assert body["state"] == "original"
        assert body["cleaned_available"] is False
        assert body["altitude_intervals"][0] == "all"

    def test_clean_report(self, loaded_client: TestClient):
        resp = loaded_client.post("/api/v1/flight/clean", json={"base_altitude": 571})
        assert resp.status_code == 200
        body = resp.json()
        assert body["original_count"] == 6
        assert body["cleaned_count"] == 3
        assert body["duplicates_removed"] == 1
        assert body["outliers_removed"] == 2
        assert body["total_removed"] == 3
        assert body["valid_percentage"] == 50.0
        assert body["duplicates"] == [{"index": 2, "time": "100", "reason": "Duplicate timestamp"}]
        assert body["outliers"][0]["column"] == "Temperatura_C"
        assert body["outliers"][1]["column"] == "Altitud_m"
        assert body["outliers"][1]["value"] is None
        assert body["outliers"][1]["raw_value"] == "abc"

    def test_blank_field_line_not_counted(self, client: TestClient):
        _upload(client, b"Tiempo_ms,Temperatura_C\n0,20\n,\n100,21\n")
        body = client.post("/api/v1/flight/clean", json={}).json()
        assert body["original_count"] == 2
        assert body["outliers_removed"] == 0

    def test_clean_default_base_altitude(self, loaded_client: TestClient):
        body = loaded_client.post("/api/v1/flight/clean", json={}).json()
        assert body["base_altitude"] == settings.DEFAULT_BASE_ALTITUDE_M

    def test_select_cleaned_then_statistics(self, loaded_client: TestClient):
        loaded_client.post("/api/v1/flight/clean", json={"base_altitude": 571})
        resp = loaded_client.post("/api/v1/flight/dataset", json={"state": "cleaned"})
        assert resp.status_code == 200
        assert resp.json() == {"state": "cleaned", "row_count": 3}

        body = loaded_client.get("/api/v1/flight/statistics").json()
        assert body["state"] == "cleaned"
        altitude = next(c for c in body["columns"] if c["column"] == "Altitud_m")
        assert altitude["min"] == 29.0
        assert altitude["max"] == 69.0
        assert altitude["count"] == 3
        assert altitude["unit"] == "m"

        resp = loaded_client.post("/api/v1/flight/dataset", json={"state": "original"})
        assert resp.json() == {"state": "original", "row_count": 6}

    def test_select_invalid_state(self, loaded_client: TestClient):
        resp = loaded_client.post("/api/v1/flight/dataset", json={"state": "raw"})
        assert resp.status_code == 422


# =========================================================================
# GET /api/v1/flight/air-quality
# =========================================================================
class TestAirQuality:

    def test_all_readings(self, loaded_client: TestClient):
        resp = loaded_client.get("/api/v1/flight/air-quality", params={"interval": "all"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["interval"] == "all"
        assert [t["tier"] for t in body["tiers"]] == [
            "excellent", "good", "moderate", "poor", "veryPoor",
        ]
        assert [t["count"] for t in body["tiers"]] == [1, 2, 1, 1, 1]
        assert body["summary"]["predominant_tier"] == "good"
        assert body["summary"]["predominant_label"] == "Buena"
        assert body["summary"]["max"] == 350.0
        assert len(body["profile"]) == 6
        assert body["profile"][0] == {
            "altitude": 600.0,
            "resistance": 350.0,
            "tier": "excellent",
            "count": None,
        }

    def test_default_interval(self, loaded_client: TestClient):
        body = loaded_client.get("/api/v1/flight/air-quality").json()
        assert body["interval"] == settings.DEFAULT_ALTITUDE_INTERVAL

    def test_bucketed(self, loaded_client: TestClient):
        body = loaded_client.get("/api/v1/flight/air-quality", params={"interval": "1000"}).json()
        assert body["interval"] == 1000.0
        assert len(body["profile"]) == 1
        assert body["profile"][0]["count"] == 6

    def test_invalid_interval(self, loaded_client: TestClient):
        resp = loaded_client.get("/api/v1/flight/air-quality", params={"interval": "-10"})
        assert resp.status_code == 422

    def test_interval_too_small(self, loaded_client: TestClient):
        resp = loaded_client.get("/api/v1/flight/air-quality", params={"interval": "1e-320"})
        assert resp.status_code == 422
        assert "too small" in resp.json()["detail"]

    def test_no_resistance_column(self, client: TestClient):
        _upload(client, b"Tiempo_ms,Altitud_m\n0,600\n")
        resp = client.get("/api/v1/flight/air-quality")
        assert resp.status_code == 422
        assert "Resistencia_kOhms" in resp.json()["detail"]


# =========================================================================
# GET /api/v1/flight/series
# =========================================================================
class TestSeries:

    def test_series(self, loaded_client: TestClient):
        resp = loaded_client.get(
            "/api/v1/flight/series",
            params={"x": "Tiempo_ms", "y": "Temperatura_C", "chart_type": "bar"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["point_count"] == 6
        assert body["chart_type"] == "bar"
        assert body["title"] == "Temperatura_C vs Tiempo_ms"

    def test_series_same_axes(self, loaded_client: TestClient):
        resp = loaded_client.get(
            "/api/v1/flight/series",
            params={"x": "Tiempo_ms", "y": "Tiempo_ms"},
        )
        assert resp.status_code == 422
