"""Custom middleware and exception handlers for API request/response processing."""

from typing import Callable, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.enums import ErrorKind
from ..domain.errors import AlreadyTrackingError, MilestoneTrackerError
from ..utils.logging_config import get_logger, log_exception

logger = get_logger("api")

# HTTP status for each domain error kind; Conflict is shown as AlreadyTracking
ERROR_KIND_STATUS = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.QUOTA_EXHAUSTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_TRACKING: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}

DEFAULT_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ProblemDetailsException(HTTPException):
    """Enhanced HTTPException that includes RFC 9457 Problem Details."""

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        **extra_fields,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.title = title
        self.type_uri = type_uri or f"https://httpstatuses.com/{status_code}"
        self.instance = instance
        self.extra_fields = extra_fields


def problem_response(
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: Optional[str] = None,
    instance: Optional[str] = None,
    headers: Optional[dict] = None,
    **extra_fields,
) -> JSONResponse:
    """Create a JSON response in RFC 9457 Problem Details format."""
    problem = {
        "type": type_uri or f"https://httpstatuses.com/{status_code}",
        "title": title,
        "status": status_code,
    }

    if detail:
        problem["detail"] = detail
    if instance:
        problem["instance"] = instance

    problem.update(extra_fields)

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(problem),
        media_type="application/problem+json",
        headers=headers,
    )


def domain_error_response(exc: MilestoneTrackerError, instance: Optional[str] = None) -> JSONResponse:
    """Render a domain error, tagging it with its error kind."""
    status_code = ERROR_KIND_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    # A lost uniqueness race looks the same to the caller as a duplicate request
    kind, title = exc.kind, exc.title
    if exc.kind == ErrorKind.CONFLICT:
        kind, title = ErrorKind.ALREADY_TRACKING, AlreadyTrackingError.title
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return problem_response(
        status_code=status_code,
        title=title,
        detail=exc.message,
        instance=instance,
        headers=headers,
        kind=kind.value,
    )


class ProblemDetailsMiddleware(BaseHTTPMiddleware):
    """Middleware to convert exceptions escaping other middleware to Problem Details."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response
        except ProblemDetailsException as exc:
            return problem_response(
                status_code=exc.status_code,
                title=exc.title,
                detail=exc.detail,
                type_uri=exc.type_uri,
                instance=exc.instance or str(request.url),
                **exc.extra_fields,
            )
        except MilestoneTrackerError as exc:
            return domain_error_response(exc, instance=str(request.url))
        except HTTPException as exc:
            return problem_response(
                status_code=exc.status_code,
                title=DEFAULT_TITLES.get(exc.status_code, "HTTP Error"),
                detail=exc.detail,
                instance=str(request.url),
            )
        except Exception as exc:
            log_exception("api", exc, {"path": request.url.path, "method": request.method})
            return problem_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                title="Internal Server Error",
                detail="An unexpected error occurred",
                instance=str(request.url),
            )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request size limits."""

    def __init__(self, app: ASGIApp, request_limit: int = 16 * 1024):
        super().__init__(app)
        self.request_limit = request_limit

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                return problem_response(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    title="Bad Request",
                    detail="Invalid Content-Length header",
                    instance=str(request.url),
                )

            if length > self.request_limit:
                return problem_response(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    title="Request Entity Too Large",
                    detail=f"Request size {length} bytes exceeds limit of {self.request_limit} bytes",
                    type_uri="https://datatracker.ietf.org/doc/html/rfc7231#section-6.5.11",
                    instance=str(request.url),
                )

        return await call_next(request)


def register_exception_handlers(app: FastAPI) -> None:
    """Render route-level errors as Problem Details."""

    @app.exception_handler(MilestoneTrackerError)
    async def handle_domain_error(request: Request, exc: MilestoneTrackerError):
        logger.info(
            f"{request.method} {request.url.path} -> {exc.kind.value}: {exc.message}"
        )
        return domain_error_response(exc, instance=str(request.url))

    @app.exception_handler(ProblemDetailsException)
    async def handle_problem_details(request: Request, exc: ProblemDetailsException):
        return problem_response(
            status_code=exc.status_code,
            title=exc.title,
            detail=exc.detail,
            type_uri=exc.type_uri,
            instance=exc.instance or str(request.url),
            **exc.extra_fields,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return problem_response(
            status_code=exc.status_code,
            title=DEFAULT_TITLES.get(exc.status_code, "HTTP Error"),
            detail=exc.detail if isinstance(exc.detail, str) else None,
            instance=str(request.url),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return problem_response(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            title="Validation Error",
            detail="Request validation failed",
            instance=str(request.url),
            kind=ErrorKind.INVALID_ARGUMENT.value,
            errors=exc.errors(),
        )
