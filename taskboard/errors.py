"""Error taxonomy for the Taskboard API and its JSON rendering."""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Leading location segments FastAPI adds to validation errors.
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


@dataclass(frozen=True)
class FieldError:
    """A single violated constraint on one input field."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class TaskboardError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal server error"

    def __init__(self, error: str | None = None, *, details: Any = None, code: str | None = None):
        super().__init__(error or self.error)
        if error is not None:
            self.error = error
        self.details = details
        self.code = code

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        if self.code is not None:
            payload["code"] = self.code
        return payload


class ValidationError(TaskboardError):
    """Client input violated one or more field constraints."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid request data"

    def __init__(self, errors: list[FieldError], error: str | None = None):
        super().__init__(error, details=[e.as_dict() for e in errors])
        self.errors = errors


class Unauthenticated(TaskboardError):
    """Missing, malformed or rejected bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"


class NotFound(TaskboardError):
    """No row with this id is owned by the caller.

    Raised both when the id does not exist and when it belongs to someone
    else; the two cases share one representation.
    """

    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class MisconfiguredBackend(TaskboardError):
    """Backend endpoint or API key is missing from the server configuration."""

    error = "Database not configured"


class UpstreamFailure(TaskboardError):
    """The hosted backend returned an error we do not classify further."""

    error = "Upstream request failed"


def field_errors_from_pydantic(errors: list[dict[str, Any]]) -> list[FieldError]:
    """Convert pydantic/FastAPI error dicts into ``FieldError`` entries."""
    result = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field = ".".join(loc) if loc else "body"
        result.append(FieldError(field=field, message=err.get("msg", "Invalid value")))
    return result


async def _handle_taskboard_error(request: Request, exc: TaskboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.error, exc.details)
    else:
        logger.info("%s %s rejected with %d: %s", request.method, request.url.path, exc.status_code, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await _handle_taskboard_error(request, ValidationError(field_errors_from_pydantic(exc.errors())))


def install_error_handlers(app: FastAPI) -> None:
    """Register the JSON error renderers on ``app``."""
    app.add_exception_handler(TaskboardError, _handle_taskboard_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
