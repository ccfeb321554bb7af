"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from authgate.core.logger import ensure_request_id
from authgate.services._shared.errors import (
    CacheUnavailableError,
    ClientError,
    CodeInvalidError,
    DailyLimitExceededError,
    DeliveryFailedError,
    InfrastructureError,
    InvalidInputError,
    ServiceError,
    SigningError,
    SubjectNotFoundError,
    TemplateNotFoundError,
    TokenError,
    TooFrequentError,
    VerifyTooManyError,
)

log = logging.getLogger(__name__)

# Resolved along the exception MRO, so subclasses inherit their parent's status.
SERVICE_ERROR_STATUS: Mapping[type[ServiceError], HTTPStatus] = {
    InvalidInputError: HTTPStatus.BAD_REQUEST,
    CodeInvalidError: HTTPStatus.BAD_REQUEST,
    TemplateNotFoundError: HTTPStatus.BAD_REQUEST,
    TooFrequentError: HTTPStatus.TOO_MANY_REQUESTS,
    DailyLimitExceededError: HTTPStatus.TOO_MANY_REQUESTS,
    VerifyTooManyError: HTTPStatus.TOO_MANY_REQUESTS,
    TokenError: HTTPStatus.UNAUTHORIZED,
    SubjectNotFoundError: HTTPStatus.NOT_FOUND,
    ClientError: HTTPStatus.BAD_REQUEST,
    CacheUnavailableError: HTTPStatus.SERVICE_UNAVAILABLE,
    DeliveryFailedError: HTTPStatus.SERVICE_UNAVAILABLE,
    SigningError: HTTPStatus.INTERNAL_SERVER_ERROR,
    InfrastructureError: HTTPStatus.INTERNAL_SERVER_ERROR,
}

GENERIC_FAILURE_MESSAGE = "Service temporarily unavailable, please retry later"


def status_for(err: ServiceError) -> HTTPStatus:
    """Return the HTTP status mapped to ``err`` (500 when unmapped)."""
    for klass in type(err).__mro__:
        status = SERVICE_ERROR_STATUS.get(klass)  # type: ignore[call-overload]
        if status is not None:
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any], status: int) -> tuple[Response, int]:
    """Return a Flask response with ``application/problem+json`` media type."""
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    return resp, int(status)


class APIError(Exception):
    """
    Represent a JSON-serializable API error raised by the HTTP layer itself.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code

    def to_problem(self) -> dict[str, Any]:
        return _as_problem(status=self.status_code, code=self.code, message=self.message)


class Unauthorized(APIError):
    """401 when no credential accompanies the request."""

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Client errors keep their stable ``code`` and safe message.
    - Infrastructure errors are logged with ``exc_info`` and answered with
      a generic message; collaborator details never reach the client.
    - Every problem carries the correlation ``request_id``.
    """

    @app.errorhandler(ClientError)
    def handle_client_error(err: ClientError):
        status = status_for(err)
        problem = _as_problem(status=status, code=err.code, message=err.message)
        log.warning(
            "ClientError: code=%s status=%s msg=%s",
            err.code,
            int(status),
            err.message,
            extra={"status": int(status), "error_code": err.code},
        )
        return _problem_response(problem, status)

    @app.errorhandler(InfrastructureError)
    def handle_infrastructure_error(err: InfrastructureError):
        status = status_for(err)
        problem = _as_problem(status=status, code=err.code, message=GENERIC_FAILURE_MESSAGE)
        log.error(
            "InfrastructureError: code=%s status=%s",
            err.code,
            int(status),
            exc_info=err,
            extra={"status": int(status), "error_code": err.code},
        )
        return _problem_response(problem, status)

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        level = log.error if err.status_code >= 500 else log.warning
        level("APIError: code=%s status=%s msg=%s", err.code, err.status_code, err.message)
        return _problem_response(problem, err.status_code)

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: fields=%s", sorted(err.messages_dict))
        return _problem_response(problem, HTTPStatus.UNPROCESSABLE_ENTITY)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level("HTTPException: code=%s status=%s detail=%s", error_code, status, message)
        return _problem_response(problem, status)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception", exc_info=err)
        return _problem_response(problem, HTTPStatus.INTERNAL_SERVER_ERROR)


__all__ = ["APIError", "Unauthorized", "init_app", "status_for", "SERVICE_ERROR_STATUS"]
