"""
Users service routes: list, read, create, update and delete members.
Passwords are always stored as Argon2 hashes and never returned.
"""

import logging
from typing import Any, Dict, Tuple

import psycopg2.errors
from flask import Blueprint, Response, jsonify

from clubhouse.auth_service.utils import hash_password, require_admin_for_mutation
from clubhouse.common.validation import (
    get_json_body,
    non_negative_int,
    one_of,
    optional_bool,
    require_fields,
)
from clubhouse.database.db_connection import get_db, serialize_row
from clubhouse.errors import ConflictError, NotFoundError, ValidationError, error_response

users_bp = Blueprint("users", __name__)

# Public columns; password_hash is deliberately absent
USER_FIELDS = "user_id, username, email, role, points, is_active, created_at"

VALID_ROLES = ["standard", "member", "admin"]
# Accounts created before the role rename carry "user"
LEGACY_ROLES = {"user": "standard"}
DUPLICATE_EMAIL = "User already exists with this email address."


def _user_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the full-row fields shared by create and update."""
    require_fields(data, ["username", "email"], "Username and email are required.")

    role = data.get("role") or "standard"
    if isinstance(role, str):
        role = role.strip().lower()
        role = LEGACY_ROLES.get(role, role)
    return {
        "username": str(data["username"]).strip(),
        "email": str(data["email"]).strip().lower(),
        "role": one_of(role, VALID_ROLES, "role"),
        "points": non_negative_int(data.get("points"), "points"),
        "is_active": optional_bool(data.get("is_active"), "is_active"),
    }


@users_bp.route("", methods=["GET"])
def list_users() -> Tuple[Response, int]:
    """
    Return every user, newest first.

    Returns:
        200: List of user objects.
        500: Database error.
    """
    sql = f"SELECT {USER_FIELDS} FROM users ORDER BY created_at DESC;"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                users = [serialize_row(row) for row in cur.fetchall()]
    except Exception as e:
        logging.error(f"[Users] Error fetching users: {e}")
        return jsonify({"message": "Database query failed to retrieve users.", "error": str(e)}), 500

    return jsonify(users), 200


@users_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id: int) -> Tuple[Response, int]:
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {USER_FIELDS} FROM users WHERE user_id = %s;", (user_id,))
                user = cur.fetchone()
    except Exception as e:
        logging.error(f"[Users] Error fetching user {user_id}: {e}")
        return jsonify({"message": "Database query failed to retrieve user.", "error": str(e)}), 500

    if not user:
        return error_response(NotFoundError("User not found."))

    return jsonify(serialize_row(user)), 200


@users_bp.route("", methods=["POST"])
def create_user() -> Tuple[Response, int]:
    """
    Create a user from the admin panel.

    Unlike /register, the caller may choose role, points and active flag.

    Returns:
        201: { "message", "user" }
        400: Validation error.
        409: Email already in use.
        500: Server error.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    data = get_json_body()
    fields = _user_payload(data)
    password = data.get("password")
    if not password or not isinstance(password, str):
        raise ValidationError("Password is required for new users.")

    pw_hash = hash_password(password)

    sql = f"""
        INSERT INTO users (username, email, password_hash, role, points, is_active)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {USER_FIELDS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT user_id FROM users WHERE email = %s;", (fields["email"],))
                if cur.fetchone():
                    return error_response(ConflictError(DUPLICATE_EMAIL))

                cur.execute(sql, (
                    fields["username"], fields["email"], pw_hash,
                    fields["role"], fields["points"], fields["is_active"],
                ))
                user = serialize_row(cur.fetchone())
                conn.commit()
    except psycopg2.errors.UniqueViolation:
        return error_response(ConflictError(DUPLICATE_EMAIL))
    except Exception as e:
        logging.error(f"[Users] Error creating user: {e}")
        return jsonify({"message": "Failed to create user.", "error": str(e)}), 500

    logging.info(f"[Users] Created user {user['user_id']} ({user['role']})")
    return jsonify({"message": "User created successfully", "user": user}), 201


@users_bp.route("/<int:user_id>", methods=["PUT"])
def update_user(user_id: int) -> Tuple[Response, int]:
    """
    Replace a user's fields.

    All fields are resupplied; omitted optional fields fall back to their
    defaults. A non-empty password is rehashed and stored.

    Returns:
        200: { "message", "user" }
        400: Validation error.
        404: User not found.
        409: Email taken by another user.
        500: Server error.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    data = get_json_body()
    fields = _user_payload(data)
    password = data.get("password")
    if password is not None and not isinstance(password, str):
        raise ValidationError("Password must be a string.")

    set_clause = "username = %s, email = %s, role = %s, points = %s, is_active = %s"
    values = [fields["username"], fields["email"], fields["role"], fields["points"], fields["is_active"]]

    # If password is provided, hash and update it
    if password:
        set_clause += ", password_hash = %s"
        values.append(hash_password(password))

    values.append(user_id)
    sql = f"UPDATE users SET {set_clause} WHERE user_id = %s RETURNING {USER_FIELDS};"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, values)
                user = cur.fetchone()
                if not user:
                    return error_response(NotFoundError("User not found."))
                conn.commit()
    except psycopg2.errors.UniqueViolation:
        return error_response(ConflictError(DUPLICATE_EMAIL))
    except Exception as e:
        logging.error(f"[Users] Error updating user {user_id}: {e}")
        return jsonify({"message": "Failed to update user.", "error": str(e)}), 500

    return jsonify({"message": "User updated successfully", "user": serialize_row(user)}), 200


@users_bp.route("/<int:user_id>", methods=["DELETE"])
def delete_user(user_id: int) -> Tuple[Response, int]:
    """
    Delete a user. Events they created are left untouched.
    """
    denied = require_admin_for_mutation()
    if denied:
        return denied

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM users WHERE user_id = %s RETURNING user_id;", (user_id,))
                deleted = cur.fetchone()
                if not deleted:
                    return error_response(NotFoundError("User not found."))
                conn.commit()
    except Exception as e:
        logging.error(f"[Users] Error deleting user {user_id}: {e}")
        return jsonify({"message": "Failed to delete user.", "error": str(e)}), 500

    logging.info(f"[Users] Deleted user {user_id}")
    return jsonify({"message": "User deleted successfully", "user_id": user_id}), 200
