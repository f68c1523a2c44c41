"""RFC 7807 problem responses for the authentication API.

Every error leaving the app is ``application/problem+json`` with a stable
``code`` and the request correlation id. Authentication failures (401) also
carry a ``WWW-Authenticate: Bearer`` challenge.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from wallet_auth.core.extensions import jwt
from wallet_auth.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

_STATUS_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "unprocessable_entity",
    500: "internal_server_error",
    503: "service_unavailable",
}


def problem_response(
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> tuple[Response, int]:
    """
    Build a Problem Details response.

    :param status: HTTP status code.
    :param code: Stable machine-readable code (``invalid_credentials``...).
    :param message: Client-safe summary; never contains secrets.
    :param details: Optional structured details (validation messages).
    :returns: ``(response, status)`` pair for Flask.
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        problem["details"] = details
    response = jsonify(problem)
    response.mimetype = PROBLEM_MIMETYPE
    if status == HTTPStatus.UNAUTHORIZED:
        response.headers["WWW-Authenticate"] = f'Bearer error="{code}"'
    return response, status


class APIError(Exception):
    """
    Client-facing error rendered as a problem response.

    :param message: Human-readable description presented to clients.
    :param status_code: HTTP status (400 by default).
    :param code: Machine-readable snake_case identifier.
    :param details: Optional structured payload.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}


class NotFound(APIError):
    def __init__(self, message: str = "Resource not found", code: str = "not_found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code=code)


class Conflict(APIError):
    def __init__(self, message: str = "Conflict", code: str = "conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code=code)


class Unauthorized(APIError):
    """401: missing, wrong or expired credentials."""

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


class Forbidden(APIError):
    """403: the presented identity contradicts the local account."""

    def __init__(self, message: str = "Forbidden", code: str = "forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code=code)


class UnprocessableEntity(APIError):
    """422: well-formed input that violates a policy (password length)."""

    def __init__(self, message: str, code: str = "unprocessable_entity") -> None:
        super().__init__(message, status_code=HTTPStatus.UNPROCESSABLE_ENTITY, code=code)


def init_app(app: Flask) -> None:
    """Register problem handlers; 5xx are logged with traceback, 4xx as warnings."""

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        level = log.error if err.status_code >= 500 else log.warning
        level("APIError: code=%s status=%s", err.code, err.status_code)
        return problem_response(err.status_code, err.code, err.message, err.details or None)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = _STATUS_CODES.get(status, "error")
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        log.warning("HTTPException: code=%s status=%s", code, status)
        return problem_response(status, code, message)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        log.warning("ValidationError on %s", request.path)
        return problem_response(
            HTTPStatus.UNPROCESSABLE_ENTITY,
            "validation_error",
            "Validation failed",
            {"errors": err.messages},
        )

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Raw constraint names stay server-side
        log.error("IntegrityError escaped the service layer", exc_info=True)
        return problem_response(HTTPStatus.CONFLICT, "conflict", "Resource conflict")

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        log.error("Record store unavailable", exc_info=True)
        return problem_response(
            HTTPStatus.SERVICE_UNAVAILABLE, "service_unavailable", "Service temporarily unavailable"
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        log.error("Unhandled exception", exc_info=True)
        return problem_response(
            HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error"
        )

    @app.errorhandler(DataError)
    def handle_data_error(err: DataError):
        log.warning("DataError escaped the service layer", exc_info=True)
        return problem_response(
            HTTPStatus.UNPROCESSABLE_ENTITY, "invalid_input", "Input value out of range"
        )

    _register_jwt_loaders()


def _register_jwt_loaders() -> None:
    """Render flask-jwt-extended failures as problem responses."""

    @jwt.unauthorized_loader
    def _missing_token(explanation: str):
        return problem_response(HTTPStatus.UNAUTHORIZED, "missing_token", "Missing bearer token")

    @jwt.invalid_token_loader
    def _invalid_token(explanation: str):
        log.info("Access token rejected: %s", explanation)
        return problem_response(
            HTTPStatus.UNAUTHORIZED, "invalid_token", "Invalid or expired access token"
        )

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        return problem_response(
            HTTPStatus.UNAUTHORIZED, "invalid_token", "Invalid or expired access token"
        )
