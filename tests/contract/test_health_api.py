"""Contract checks for service and database health endpoints."""

from __future__ import annotations


def test_service_root_reports_healthy(client, settings) -> None:
    response = client.get("/")

    assert response.status_code == 200
    payload = response.json()
    assert payload["meta"]["message"] == "Service is healthy"
    assert payload["data"]["status"] == "healthy"
    assert payload["data"]["service"] == settings.app_name
    assert payload["data"]["version"] == settings.app_version


def test_database_health_probes_and_reports_metrics(client) -> None:
    response = client.get("/health/database")

    assert response.status_code == 200
    payload = response.json()
    assert payload["meta"]["message"] == "Database is healthy"
    assert payload["data"]["database_health"]["is_healthy"] is True
    assert payload["data"]["database_health"]["last_error"] == ""
    assert payload["data"]["connection_metrics"]["max_open_connections"] == 25


def test_database_health_failure_is_internal_error(client, database, monkeypatch) -> None:
    def failing_ping(_engine) -> None:
        raise RuntimeError("connection refused")

    monkeypatch.setattr(database, "_ping", failing_ping)

    response = client.get("/health/database")

    assert response.status_code == 500
    meta = response.json()["meta"]
    assert meta["error_code"] == "INTERNAL_ERROR"
    assert meta["message"] == "Database is unhealthy"
    assert "details" not in meta


def test_fast_health_returns_cached_snapshot(client) -> None:
    response = client.get("/health/fast")

    assert response.status_code == 200
    payload = response.json()
    assert payload["meta"]["message"] == "Database health snapshot"
    assert payload["data"]["is_healthy"] is True
    assert payload["data"]["retry_count"] == 0


def test_metrics_include_pool_configuration(client, settings) -> None:
    response = client.get("/health/metrics")

    assert response.status_code == 200
    payload = response.json()
    assert payload["meta"]["message"] == "Database metrics retrieved successfully"
    configuration = payload["data"]["configuration"]
    assert configuration["max_open_connections"] == settings.database.max_open_conns
    assert configuration["max_idle_connections"] == settings.database.max_idle_conns
    assert payload["data"]["health_status"]["is_healthy"] is True


def test_openapi_lists_every_route(client) -> None:
    paths = client.get("/openapi.json").json()["paths"]

    assert set(paths) >= {
        "/",
        "/health/database",
        "/health/fast",
        "/health/metrics",
        "/api/v1/users",
        "/api/v1/users/{user_id}",
        "/api/v1/companies",
        "/api/v1/companies/{company_id}",
    }
    assert set(paths["/api/v1/users/{user_id}"]) == {"get", "put", "delete"}


def test_openapi_documents_error_envelope(client) -> None:
    document = client.get("/openapi.json").json()
    envelope_ref = "#/components/schemas/ErrorEnvelope"

    def error_ref(path: str, method: str, status: str) -> str:
        response = document["paths"][path][method]["responses"][status]
        return response["content"]["application/json"]["schema"]["$ref"]

    assert "ErrorEnvelope" in document["components"]["schemas"]
    for status in ("400", "404", "500"):
        assert error_ref("/api/v1/users", "get", status) == envelope_ref
        assert error_ref("/api/v1/companies/{company_id}", "put", status) == envelope_ref
    assert error_ref("/health/database", "get", "500") == envelope_ref
