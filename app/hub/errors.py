from __future__ import annotations

from flask import current_app, g

from app.hub.db import db_session
from app.hub.utils import json_error


class ServiceError(Exception):
    """Base for errors a service call reports back to the caller."""

    status_code = 500


class ValidationFailed(ServiceError):
    status_code = 400


class UserNotFound(ServiceError):
    """The session names a user that no longer exists."""

    status_code = 401


class OwnershipViolation(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


def failure_response(e: Exception, failure: str):
    """
    Roll back the request session and turn a failed service call into a JSON error.
    Service errors keep their own message; anything else is logged and reported as `failure`.
    """
    db_session().rollback()
    if isinstance(e, ServiceError):
        return json_error(str(e), e.status_code)
    current_app.logger.exception("%s (request_id=%s)", failure, getattr(g, "request_id", None))
    return json_error(failure, 500)
