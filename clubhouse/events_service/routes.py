"""
Events service routes: create, read, update and delete club events.
Handles event lifecycle (scheduled -> ongoing -> completed, or cancelled).
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify

from clubhouse.auth_service.utils import current_identity, require_admin_for_mutation
from clubhouse.common.validation import (
    get_json_body,
    non_negative_number,
    one_of,
    optional_datetime,
    optional_positive_int,
    require_datetime,
    require_fields,
)
from clubhouse.database.db_connection import get_db, serialize_row
from clubhouse.errors import NotFoundError, ValidationError, error_response

events_bp = Blueprint("events", __name__)

# --- CONSTANTS FOR VALIDATION ---
TITLE_MAX_LENGTH = 200
VALID_STATUSES = ["scheduled", "ongoing", "completed", "cancelled"]

EVENT_FIELDS = """
    event_id, title, description, location, start_time, end_time,
    status, fee, max_participants, creator_id, created_at
"""


def _event_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate the full set of event fields.

    end_time is the registration deadline and is optional.
    """
    require_fields(data, ["title", "start_time"], "Title and start_time are required.")

    title = str(data["title"]).strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be {TITLE_MAX_LENGTH} characters or less.")

    start_dt: datetime = require_datetime(data, "start_time")
    end_dt = optional_datetime(data, "end_time")

    return {
        "title": title,
        "description": data.get("description") or None,
        "location": data.get("location") or None,
        "start_time": start_dt,
        "end_time": end_dt,
        "status": one_of(data.get("status") or "scheduled", VALID_STATUSES, "status"),
        "fee": non_negative_number(data.get("fee"), "fee", default=Decimal("0")),
        "max_participants": optional_positive_int(data.get("max_participants"), "max_participants"),
    }


@events_bp.route("", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return all events, most recently created first.

    Returns:
        200: List of event objects.
        500: Database error.
    """
    sql = f"SELECT {EVENT_FIELDS} FROM events ORDER BY created_at DESC;"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                rows = [serialize_row(r) for r in cur.fetchall()]
    except Exception as e:
        logging.error(f"[Events] Database error listing events: {e}")
        return jsonify({"message": "Database query failed to retrieve events.", "error": str(e)}), 500

    return jsonify(rows), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID.

    Returns:
        200: Event object.
        404: Event not found.
        500: Database error.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {EVENT_FIELDS} FROM events WHERE event_id = %s;", (event_id,))
                event = cur.fetchone()
    except Exception as e:
        logging.error(f"[Events] Database error getting event {event_id}: {e}")
        return jsonify({"message": "Database query failed to retrieve event.", "error": str(e)}), 500

    if not event:
        return error_response(NotFoundError("Event not found."))

    return jsonify(serialize_row(event)), 200


@events_bp.route("", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event owned by the caller.

    Validations:
    - title and start_time present, title length.
    - ISO-8601 datetimes.
    - status in VALID_STATUSES, non-negative fee, positive max_participants.

    Returns:
        201: { "message", "event" }
        400: Validation error.
        500: Server error.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    fields = _event_payload(get_json_body())
    creator_id = current_identity().get("user_id")

    sql = f"""
        INSERT INTO events (
            title, description, location, start_time, end_time,
            status, fee, max_participants, creator_id
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {EVENT_FIELDS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    fields["title"], fields["description"], fields["location"],
                    fields["start_time"], fields["end_time"],
                    fields["status"], fields["fee"], fields["max_participants"],
                    creator_id,
                ))
                event = serialize_row(cur.fetchone())
                conn.commit()
    except Exception as e:
        logging.error(f"[Events] Database error creating event: {e}")
        return jsonify({"message": "Failed to create event.", "error": str(e)}), 500

    logging.info(f"[Events] Created event {event['event_id']} by user {creator_id}")
    return jsonify({"message": "Event created successfully", "event": event}), 201


@events_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Replace an event's fields. The creator is not changed.

    Returns:
        200: { "message", "event" }
        400: Validation error.
        404: Event not found.
        500: Server error.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    fields = _event_payload(get_json_body())

    sql = f"""
        UPDATE events
        SET title = %s, description = %s, location = %s, start_time = %s,
            end_time = %s, status = %s, fee = %s, max_participants = %s,
            updated_at = CURRENT_TIMESTAMP
        WHERE event_id = %s
        RETURNING {EVENT_FIELDS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    fields["title"], fields["description"], fields["location"],
                    fields["start_time"], fields["end_time"],
                    fields["status"], fields["fee"], fields["max_participants"],
                    event_id,
                ))
                event = cur.fetchone()
                if not event:
                    return error_response(NotFoundError("Event not found."))
                conn.commit()
    except Exception as e:
        logging.error(f"[Events] Database error updating event {event_id}: {e}")
        return jsonify({"message": "Failed to update event.", "error": str(e)}), 500

    return jsonify({"message": "Event updated successfully", "event": serialize_row(event)}), 200


@events_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int) -> Tuple[Response, int]:
    denied = require_admin_for_mutation()
    if denied:
        return denied

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM events WHERE event_id = %s RETURNING event_id;", (event_id,))
                deleted = cur.fetchone()
                if not deleted:
                    return error_response(NotFoundError("Event not found."))
                conn.commit()
    except Exception as e:
        logging.error(f"[Events] Database error deleting event {event_id}: {e}")
        return jsonify({"message": "Failed to delete event.", "error": str(e)}), 500

    return jsonify({"message": "Event deleted successfully", "event_id": event_id}), 200
