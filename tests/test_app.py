from datetime import datetime


def test_health_reports_database_status(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["dbStatus"] == "Connected"
    datetime.fromisoformat(body["timestamp"])


def test_unknown_endpoint_uses_error_envelope(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Endpoint not found"}


def test_malformed_json_body_is_a_validation_error(client, admin_headers):
    response = client.post(
        "/blogs",
        content=b"{not json",
        headers={**admin_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["success"] is False
