from toolshare import __version__


def test_health_reports_service_metadata(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == __version__
    assert response.headers["Cache-Control"] == "no-store"


def test_ready_checks_database(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_prometheus_metrics_exposed(client, pending_booking):
    response = client.get("/metrics/prometheus")

    assert response.status_code == 200
    assert "toolshare_prometheus_scrapes_total" in response.text
