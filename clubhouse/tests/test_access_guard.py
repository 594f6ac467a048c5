from datetime import datetime, timedelta, timezone

from clubhouse.auth_service.utils import create_token


def test_health_is_public(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_missing_token_is_401(client):
    response = client.get("/api/events")
    assert response.status_code == 401
    assert response.get_json()["message"] == "Authentication required: Missing token."


def test_invalid_token_is_403(client):
    response = client.get("/api/products", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 403
    assert response.get_json()["message"] == "Invalid or expired token."


def test_expired_token_is_403(app, client):
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    with app.app_context():
        token = create_token(1, "a@x.com", "admin", now=issued)

    response = client.get("/api/users", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_valid_token_reaches_handler(client, mock_db, admin_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchall.return_value = []

    response = client.get("/api/events", headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json() == []


def test_register_and_login_skip_guard(client):
    # Reaches validation, not the guard
    response = client.post("/api/register", json={})
    assert response.status_code == 400
    response = client.post("/api/login", json={})
    assert response.status_code == 400


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "message" in response.get_json()


def test_cors_preflight_skips_guard(client):
    response = client.options(
        "/api/events",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
