"""
Dashboard service routes: admin summary counts and the points leaderboard.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify, request

from clubhouse.database.db_connection import get_db, serialize_row
from clubhouse.errors import ValidationError

dashboard_bp = Blueprint("dashboard", __name__)

ACTIVE_EVENT_STATUSES = ("scheduled", "ongoing")

# (minimum points, level), highest first
LEVEL_THRESHOLDS = [(4500, "Gold"), (3300, "Silver"), (0, "Bronze")]

LEADERBOARD_DEFAULT_LIMIT = 10
LEADERBOARD_MAX_LIMIT = 100


def level_for_points(points: int) -> str:
    for minimum, level in LEVEL_THRESHOLDS:
        if points >= minimum:
            return level
    return LEVEL_THRESHOLDS[-1][1]


@dashboard_bp.route("/dashboard/stats", methods=["GET"])
def dashboard_stats() -> Tuple[Response, int]:
    """
    Summary counts for the admin dashboard.

    Returns:
        200: { "totalUsers", "activeEvents", "totalProducts" }
        500: Database error.
    """
    sql = """
        SELECT
            (SELECT COUNT(*) FROM users) AS total_users,
            (SELECT COUNT(*) FROM events WHERE status IN %s) AS active_events,
            (SELECT COUNT(*) FROM products) AS total_products;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (ACTIVE_EVENT_STATUSES,))
                row = cur.fetchone()
    except Exception as e:
        logging.error(f"[Dashboard] Error computing stats: {e}")
        return jsonify({"message": "Failed to retrieve dashboard stats.", "error": str(e)}), 500

    return jsonify({
        "totalUsers": int(row["total_users"]),
        "activeEvents": int(row["active_events"]),
        "totalProducts": int(row["total_products"]),
    }), 200


@dashboard_bp.route("/leaderboard", methods=["GET"])
def leaderboard() -> Tuple[Response, int]:
    """
    Active users ranked by points.

    Query params:
    - limit (int, optional): number of entries, 1..100, default 10.

    Returns:
        200: List of { rank, user_id, username, points, level }.
        400: Invalid limit.
        500: Database error.
    """
    raw_limit = request.args.get("limit")
    if raw_limit is None:
        limit = LEADERBOARD_DEFAULT_LIMIT
    else:
        try:
            limit = int(raw_limit)
        except ValueError:
            raise ValidationError("limit must be an integer.")
        if not 1 <= limit <= LEADERBOARD_MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {LEADERBOARD_MAX_LIMIT}.")

    sql = """
        SELECT user_id, username, points
        FROM users
        WHERE is_active
        ORDER BY points DESC, username ASC
        LIMIT %s;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (limit,))
                rows = [serialize_row(r) for r in cur.fetchall()]
    except Exception as e:
        logging.error(f"[Dashboard] Error building leaderboard: {e}")
        return jsonify({"message": "Failed to retrieve leaderboard.", "error": str(e)}), 500

    board = []
    for rank, row in enumerate(rows, start=1):
        points = row.get("points") or 0
        board.append({
            "rank": rank,
            "user_id": row["user_id"],
            "username": row["username"],
            "points": points,
            "level": level_for_points(points),
        })

    return jsonify(board), 200
