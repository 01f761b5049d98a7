"""Error handlers, error middlewares and the context they write onto.

A handler receives the error and an :class:`ErrorContext` and writes at most
one response onto it. A middleware takes a handler and returns a handler, so
cross-cutting behaviour (logging, metrics) wraps around it without changing its
signature:

    def timing(next_handler: ErrorHandler) -> ErrorHandler:
        def handler(exc: BaseException, ctx: ErrorContext) -> None:
            started = time.perf_counter()
            next_handler(exc, ctx)
            ctx.request.state.error_handling_seconds = time.perf_counter() - started
        return handler
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from structlog.stdlib import BoundLogger

from faultroute.config import Settings
from faultroute.exceptions import InvalidArgumentError
from faultroute.logging import get_logger
from faultroute.schemas.error import ErrorDetail, ErrorResponse

logger = get_logger(__name__)

GENERIC_MESSAGE = "Internal server error"

# Method names shared by structlog and stdlib loggers
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

type ErrorHandler = Callable[[BaseException, ErrorContext], None]
type ErrorMiddleware = Callable[[ErrorHandler], ErrorHandler]


def error_json(status_code: int, code: str, message: str) -> dict[str, Any]:
    """Build the standard error envelope as a dict for JSONResponse."""
    detail = ErrorDetail(code=code, message=message, status=status_code)
    return ErrorResponse(error=detail).model_dump()


@dataclass
class ErrorContext:
    """Per-request state a handler writes its response onto.

    ``response`` starts as the endpoint's own response when the error was
    recorded rather than raised, and as None otherwise. ``written`` only turns
    true once a handler responds.
    """

    request: Request
    response: Response | None = None
    written: bool = False

    def respond(self, response: Response) -> None:
        if self.written and self.response is not None:
            logger.warning(
                "response_overwritten",
                path=self.request.url.path,
                previous_status=self.response.status_code,
                status_code=response.status_code,
            )
        self.response = response
        self.written = True

    def json(self, status_code: int, content: Any) -> None:
        self.respond(JSONResponse(status_code=status_code, content=content))

    def error(self, status_code: int, code: str, message: str) -> None:
        """Respond with the standard ``{"error": {"code", "message", "status"}}`` envelope."""
        self.json(status_code, error_json(status_code, code, message))


def _identity_middleware(handler: ErrorHandler) -> ErrorHandler:
    return handler


def chain_middleware(*middlewares: ErrorMiddleware) -> ErrorMiddleware:
    """Compose middlewares so the first one given ends up outermost.

    ``chain_middleware(m1, m2, m3)(h)`` is ``m1(m2(m3(h)))``.
    """
    if not middlewares:
        return _identity_middleware

    def middleware(handler: ErrorHandler) -> ErrorHandler:
        for wrapper in reversed(middlewares):
            handler = wrapper(handler)
        return handler

    return middleware


def chain_handlers(*handlers: ErrorHandler) -> ErrorHandler:
    """Fan one error out to several handlers, called in order, none skipped."""

    def handler(exc: BaseException, ctx: ErrorContext) -> None:
        for each in handlers:
            each(exc, ctx)

    return handler


def json_handler(status_code: int, code: str, message: str | None = None) -> ErrorHandler:
    """Handler writing the error envelope with a fixed status and code.

    The message defaults to ``str(exc)``.
    """

    def handler(exc: BaseException, ctx: ErrorContext) -> None:
        ctx.error(status_code, code, message if message is not None else str(exc))

    return handler


def make_fallback_handler(settings: Settings) -> ErrorHandler:
    """Default handler for errors with no registered identity.

    Responds with a server error. The error's own message is exposed unless
    ``expose_error_messages`` is turned off.
    """

    def fallback(exc: BaseException, ctx: ErrorContext) -> None:
        logger.error(
            "unhandled_error",
            error_type=type(exc).__name__,
            error=str(exc),
            path=ctx.request.url.path,
        )
        message = str(exc) if settings.expose_error_messages else GENERIC_MESSAGE
        ctx.error(settings.fallback_status_code, settings.fallback_error_code, message)

    return fallback


def log_errors(log: BoundLogger | None = None) -> ErrorMiddleware:
    """Middleware logging before and after the wrapped handler runs."""
    log = log or logger

    def middleware(next_handler: ErrorHandler) -> ErrorHandler:
        def handler(exc: BaseException, ctx: ErrorContext) -> None:
            log.info(
                "error_dispatch_started",
                error_type=type(exc).__name__,
                path=ctx.request.url.path,
            )
            next_handler(exc, ctx)
            log.info(
                "error_dispatch_finished",
                error_type=type(exc).__name__,
                status_code=ctx.response.status_code if ctx.response is not None else None,
            )

        return handler

    return middleware


def log_handler(event: str = "error_handled", level: str = "warning") -> ErrorHandler:
    """Handler that only logs, for use alongside a responding one in chain_handlers.

    Raises:
        InvalidArgumentError: ``level`` is not a log level name.
    """
    if level not in LOG_LEVELS:
        raise InvalidArgumentError(f"unknown log level {level!r}, expected one of {LOG_LEVELS}")

    def handler(exc: BaseException, ctx: ErrorContext) -> None:
        getattr(logger, level)(
            event,
            error_type=type(exc).__name__,
            error=str(exc),
            method=ctx.request.method,
            path=ctx.request.url.path,
        )

    return handler
