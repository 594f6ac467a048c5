"""
API error types and their JSON rendering.

Every error carries the HTTP status it maps to. Handlers raise these for
client mistakes; the gateway turns them into {"message": ...} responses.
"""

import logging
from typing import Tuple

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Missing or malformed request fields."""

    status_code = 400


class AuthError(ApiError):
    """Bad credentials or missing token."""

    status_code = 401


class ForbiddenError(ApiError):
    """Invalid token, role mismatch, or insufficient role."""

    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    """Duplicate unique key (e.g. email)."""

    status_code = 409


def error_response(err: ApiError) -> Tuple[Response, int]:
    return jsonify({"message": err.message}), err.status_code


def register_error_handlers(app: Flask) -> None:
    """
    Attach JSON error handlers to the application.

    Args:
        app (Flask): The application to configure.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError) -> Tuple[Response, int]:
        return error_response(err)

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException) -> Tuple[Response, int]:
        # Unknown routes, wrong methods, malformed JSON bodies
        return jsonify({"message": err.description}), err.code

    @app.errorhandler(500)
    def internal_error(err) -> Tuple[Response, int]:
        original = getattr(err, "original_exception", None) or err
        logging.error(f"Unhandled error: {original}")
        return jsonify({"message": "Internal server error.", "error": str(original)}), 500
