import pytest
from datetime import datetime
from decimal import Decimal


EVENT_ROW = {
    "event_id": 1,
    "title": "Winter Tournament",
    "description": "Desc",
    "location": "Main Hall",
    "start_time": datetime(2025, 1, 1, 10, 0, 0),
    "end_time": datetime(2024, 12, 20, 23, 59, 0),
    "status": "scheduled",
    "fee": Decimal("15.50"),
    "max_participants": 32,
    "creator_id": 1,
    "created_at": datetime(2024, 11, 1, 8, 0, 0),
}


def test_list_events(client, mock_db, member_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchall.return_value = [EVENT_ROW]

    response = client.get("/api/events", headers=member_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert len(data) == 1
    assert data[0]["title"] == "Winter Tournament"
    assert data[0]["fee"] == 15.5
    assert data[0]["start_time"] == "2025-01-01T10:00:00"
    assert "ORDER BY created_at DESC" in mock_cursor.execute.call_args[0][0]


def test_list_events_database_error(client, mock_db, member_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.execute.side_effect = Exception("relation \"events\" does not exist")

    response = client.get("/api/events", headers=member_headers)

    assert response.status_code == 500
    assert "does not exist" in response.get_json()["error"]


def test_get_event_detail(client, mock_db, member_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = EVENT_ROW

    response = client.get("/api/events/1", headers=member_headers)
    assert response.status_code == 200
    assert response.get_json()["max_participants"] == 32


def test_get_deleted_event(client, mock_db, member_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = None

    response = client.get("/api/events/1", headers=member_headers)

    assert response.status_code == 404
    assert response.get_json()["message"] == "Event not found."


def test_create_event_success(client, mock_db, admin_headers):
    mock_conn, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = EVENT_ROW

    payload = {
        "title": "Winter Tournament",
        "description": "Desc",
        "location": "Main Hall",
        "start_time": "2025-01-01T10:00:00Z",
        "end_time": "2024-12-20T23:59",
        "fee": 15.5,
        "max_participants": 32,
    }

    response = client.post("/api/events", json=payload, headers=admin_headers)

    assert response.status_code == 201
    data = response.get_json()
    assert data["message"] == "Event created successfully"
    assert data["event"]["event_id"] == 1

    args, _ = mock_cursor.execute.call_args
    values = args[1]
    assert values[0] == "Winter Tournament"
    assert values[5] == "scheduled"
    assert values[6] == Decimal("15.5")
    # creator_id comes from the token
    assert values[8] == 1
    assert mock_conn.commit.called


def test_create_event_defaults(client, mock_db, admin_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = EVENT_ROW

    payload = {"title": "Open Night", "start_time": "2025-03-01T19:00"}
    response = client.post("/api/events", json=payload, headers=admin_headers)

    assert response.status_code == 201
    values = mock_cursor.execute.call_args[0][1]
    assert values[1] is None  # description
    assert values[4] is None  # end_time
    assert values[6] == Decimal("0")
    assert values[7] is None  # max_participants


@pytest.mark.parametrize("payload, message", [
    ({"title": "New Event"}, "Title and start_time are required."),
    ({"start_time": "2025-03-01T19:00"}, "Title and start_time are required."),
    ({"title": "E", "start_time": "tomorrow"}, "Invalid start_time format. Use ISO-8601."),
    ({"title": "E", "start_time": "2025-03-01T19:00", "end_time": "soon"}, "Invalid end_time format. Use ISO-8601."),
    ({"title": "E", "start_time": "2025-03-01T19:00", "status": "postponed"}, "status must be one of"),
    ({"title": "E", "start_time": "2025-03-01T19:00", "fee": -1}, "fee must be a non-negative number."),
    ({"title": "E", "start_time": "2025-03-01T19:00", "max_participants": 0}, "max_participants must be a positive integer."),
    ({"title": "x" * 201, "start_time": "2025-03-01T19:00"}, "Title must be 200 characters or less."),
])
def test_create_event_invalid_input(client, admin_headers, payload, message):
    response = client.post("/api/events", json=payload, headers=admin_headers)
    assert response.status_code == 400
    assert message in response.get_json()["message"]


def test_update_event(client, mock_db, admin_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = dict(EVENT_ROW, status="ongoing")

    payload = {"title": "Winter Tournament", "start_time": "2025-01-01T10:00:00", "status": "ongoing"}
    response = client.put("/api/events/1", json=payload, headers=admin_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data["message"] == "Event updated successfully"
    assert data["event"]["status"] == "ongoing"
    values = mock_cursor.execute.call_args[0][1]
    assert values[-1] == 1


def test_update_nonexistent_event(client, mock_db, admin_headers):
    mock_conn, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = None

    payload = {"title": "Ghost", "start_time": "2025-01-01T10:00:00"}
    response = client.put("/api/events/999", json=payload, headers=admin_headers)

    assert response.status_code == 404
    assert response.get_json()["message"] == "Event not found."
    assert not mock_conn.commit.called


def test_delete_event_twice(client, mock_db, admin_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.side_effect = [{"event_id": 1}, None]

    first = client.delete("/api/events/1", headers=admin_headers)
    second = client.delete("/api/events/1", headers=admin_headers)

    assert first.status_code == 200
    assert first.get_json()["event_id"] == 1
    assert second.status_code == 404
    assert second.get_json()["message"] == "Event not found."


def test_create_event_blocked_for_member_when_enforced(strict_client, member_headers):
    payload = {"title": "E", "start_time": "2025-03-01T19:00"}
    response = strict_client.post("/api/events", json=payload, headers=member_headers)
    assert response.status_code == 403


def test_create_event_allowed_for_admin_when_enforced(strict_client, mock_db, admin_headers):
    _, mock_cursor = mock_db("events_service")
    mock_cursor.fetchone.return_value = EVENT_ROW

    payload = {"title": "E", "start_time": "2025-03-01T19:00"}
    response = strict_client.post("/api/events", json=payload, headers=admin_headers)
    assert response.status_code == 201


def test_create_event_with_overflowing_capacity(client, admin_headers):
    body = '{"title": "E", "start_time": "2025-03-01T19:00", "max_participants": 1e400}'
    response = client.post("/api/events", data=body, content_type="application/json", headers=admin_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "max_participants must be an integer."
