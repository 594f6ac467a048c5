"""
Shared authentication helpers.
Provides password hashing, token creation and verification, the request
guard, and role enforcement.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Response, current_app, g, jsonify, request

ph = PasswordHasher()

JWT_ALGORITHM = "HS256"

# Endpoints reachable without a token
PUBLIC_ENDPOINTS = {"auth.register", "auth.login", "ping", "health", "static"}

# Hashes written by the previous bcrypt-based backend
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

ADMIN_ROLE = "admin"
MEMBER_ROLES = ("user", "standard", "member")


# --- PASSWORDS ---
def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    """
    Check a plaintext password against a stored Argon2 hash.

    Legacy bcrypt hashes are still accepted so existing accounts can sign in;
    they are replaced with Argon2 the next time the password is set.

    Returns:
        bool: True on match. Mismatches and unreadable hashes both return False.
    """
    if not password_hash:
        return False
    if password_hash.startswith(BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def normalize_role(role: Optional[str]) -> str:
    return str(role or "").strip().lower()


# --- JWT CREATION ---
def create_token(user_id: int, email: str, role: str, now: Optional[datetime] = None) -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.
        email (str): The user's email address.
        role (str): The role of the user (standard, member, admin).
        now (datetime, optional): Issue time. Defaults to the current UTC time.

    Returns:
        str: Encoded JWT string.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    minutes = current_app.config.get("TOKEN_EXPIRATION_MINUTES", 60)
    payload = {
        "user_id": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }

    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=JWT_ALGORITHM)


# --- JWT VALIDATION ---
def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        jwt.InvalidTokenError: If the token is malformed, tampered with or expired.
    """
    return jwt.decode(
        token,
        current_app.config["JWT_SECRET"],
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "iat"]},
    )


def verify_token_from_request() -> Tuple[Optional[Dict[str, Any]], Optional[Response], Optional[int]]:
    """
    Verify the JWT in the Authorization header.

    Returns:
        tuple: (identity, error_response, status_code)
               If successful, error_response and status_code are None.
               If failed, identity is None.
    """
    auth = request.headers.get("Authorization", "")

    if not auth.startswith("Bearer ") or not auth[7:].strip():
        return None, jsonify({"message": "Authentication required: Missing token."}), 401

    token = auth.split(" ", 1)[1].strip()

    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        logging.info("[Auth] Rejected expired token")
        return None, jsonify({"message": "Invalid or expired token."}), 403
    except jwt.InvalidTokenError:
        logging.info("[Auth] Rejected invalid token")
        return None, jsonify({"message": "Invalid or expired token."}), 403

    identity = {
        "user_id": payload.get("user_id"),
        "email": payload.get("email"),
        "role": payload.get("role"),
    }
    return identity, None, None


def authenticate_request() -> Optional[Tuple[Response, int]]:
    """
    before_request hook guarding every non-public endpoint.

    Unknown routes (endpoint None) fall through so they render as 404.
    """
    if request.method == "OPTIONS":
        return None
    if request.endpoint is None or request.endpoint in PUBLIC_ENDPOINTS:
        return None

    identity, err, code = verify_token_from_request()
    if err:
        return err, code

    g.current_user = identity
    return None


def current_identity() -> Dict[str, Any]:
    return g.current_user


# --- ROLE ENFORCEMENT ---
def require_admin_for_mutation() -> Optional[Tuple[Response, int]]:
    """
    Reject non-admin callers on create/update/delete routes.

    Only active when ADMIN_ONLY_MUTATIONS is enabled; otherwise any
    authenticated identity may mutate resources.

    Returns:
        tuple: (error_response, 403) when denied, None when allowed.
    """
    if not current_app.config.get("ADMIN_ONLY_MUTATIONS", False):
        return None

    identity = g.get("current_user") or {}
    if normalize_role(identity.get("role")) != ADMIN_ROLE:
        return jsonify({"message": "Admin access required."}), 403
    return None
