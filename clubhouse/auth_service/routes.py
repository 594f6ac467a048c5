"""
Authentication service route handlers.

Provides routes for:
- User registration
- Role-gated login (member context vs. admin context)
- Profile retrieval (/me)

All JWT and hashing logic is delegated to `auth_service.utils`.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import psycopg2.errors
from flask import Blueprint, Response, jsonify, request

from clubhouse.auth_service.utils import (
    ADMIN_ROLE,
    MEMBER_ROLES,
    create_token,
    current_identity,
    hash_password,
    normalize_role,
    verify_password,
)
from clubhouse.common.validation import get_json_body
from clubhouse.database.db_connection import get_db, serialize_row
from clubhouse.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    error_response,
)
from clubhouse.users_service.routes import USER_FIELDS

auth_bp = Blueprint("auth", __name__)

DEFAULT_ROLE = "standard"
INVALID_CREDENTIALS = "Invalid email or password."
DUPLICATE_EMAIL = "User already exists with this email address."


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request to the authentication service.
    Headers and bodies are not logged since they carry credentials.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Auth] Response {response.status}")
    return response


def check_login_context(stored_role: Optional[str], requested_role: Optional[str]) -> None:
    """
    Ensure the account's role matches the login form it came through.

    Admin accounts may only sign in through the admin form and member
    accounts only through the member form.

    Raises:
        ForbiddenError: On a context mismatch.
    """
    expected = ADMIN_ROLE if normalize_role(requested_role) == ADMIN_ROLE else "user"
    role = normalize_role(stored_role)

    if expected == ADMIN_ROLE and role != ADMIN_ROLE:
        raise ForbiddenError("Only admin accounts can sign in here.")
    if expected == "user" and role not in MEMBER_ROLES:
        raise ForbiddenError("Only member accounts can sign in here.")


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new standard user.

    Expects a JSON body with:
    - username (str)
    - email (str): Unique email address.
    - password (str)

    Returns:
        201: JSON with message, token and the public user record.
        400: Missing fields.
        409: Email already registered.
        500: Server-side error (hashing or database).
    """
    data: Dict[str, Any] = get_json_body()
    username = str(data.get("username") or "").strip()
    email = str(data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not username or not email or not password:
        raise ValidationError("Username, email, and password are required.")
    if not isinstance(password, str):
        raise ValidationError("Password must be a string.")

    logging.info(f"[Auth] Registering {email}")

    try:
        pw_hash = hash_password(password)
    except Exception as e:
        logging.error(f"[Auth] Password hashing failed: {e}")
        return jsonify({"message": "Failed to register user.", "error": str(e)}), 500

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT user_id FROM users WHERE email = %s;", (email,))
                if cur.fetchone():
                    return error_response(ConflictError(DUPLICATE_EMAIL))

                cur.execute(
                    f"""
                    INSERT INTO users (username, email, password_hash, role, points)
                    VALUES (%s, %s, %s, %s, 0)
                    RETURNING {USER_FIELDS};
                    """,
                    (username, email, pw_hash, DEFAULT_ROLE),
                )
                user = serialize_row(cur.fetchone())
                conn.commit()
    except psycopg2.errors.UniqueViolation:
        # Lost a race with a concurrent registration of the same email
        return error_response(ConflictError(DUPLICATE_EMAIL))
    except Exception as e:
        logging.error(f"[Auth] Error during user registration: {e}")
        return jsonify({"message": "Failed to register user.", "error": str(e)}), 500

    # Generate initial token for immediate login
    token = create_token(user["user_id"], user["email"], user["role"])

    return jsonify({
        "message": "User registered successfully",
        "token": token,
        "user": user,
    }), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)
    - role (str, optional): "admin" for the admin form, anything else for
      the member form.

    Returns:
        200: JSON with message, token and the user record (no hash).
        400: Missing credentials.
        401: Unknown email or wrong password (same message for both).
        403: Account role does not match the login context, or account inactive.
        500: Database error.
    """
    data: Dict[str, Any] = get_json_body()
    email = str(data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    requested_role = data.get("role")

    if not email or not password:
        raise ValidationError("Email and password are required.")

    logging.info(f"[Auth] Login attempt for {email} (context={requested_role or 'user'})")

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {USER_FIELDS}, password_hash FROM users WHERE email = %s;",
                    (email,),
                )
                user = cur.fetchone()
    except Exception as e:
        logging.error(f"[Auth] Error during user login: {e}")
        return jsonify({"message": "Login failed.", "error": str(e)}), 500

    if not user:
        raise AuthError(INVALID_CREDENTIALS)

    # Role context is checked before the password
    check_login_context(user["role"], requested_role)

    if not verify_password(user["password_hash"], str(password)):
        raise AuthError(INVALID_CREDENTIALS)

    if user.get("is_active") is False:
        raise ForbiddenError("This account has been deactivated.")

    safe_user = serialize_row({k: v for k, v in dict(user).items() if k != "password_hash"})
    token = create_token(safe_user["user_id"], safe_user["email"], safe_user["role"])

    return jsonify({
        "message": "Login successful",
        "token": token,
        "user": safe_user,
    }), 200


# --- GET CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
def get_current_user() -> Tuple[Response, int]:
    """
    Retrieve the authenticated user's profile.

    Returns:
        200: User object.
        404: User no longer exists.
        500: Database error.
    """
    user_id = current_identity()["user_id"]

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {USER_FIELDS} FROM users WHERE user_id = %s;", (user_id,))
                user = cur.fetchone()
    except Exception as e:
        logging.error(f"[Auth] Could not retrieve user {user_id}: {e}")
        return jsonify({"message": "Could not retrieve user.", "error": str(e)}), 500

    if not user:
        return error_response(NotFoundError("User not found."))

    return jsonify(serialize_row(user)), 200
