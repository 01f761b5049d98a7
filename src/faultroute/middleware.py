"""Starlette middleware that routes request errors through an ErrorRegistry."""

from collections.abc import Awaitable, Callable

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from faultroute.handlers import ErrorContext
from faultroute.logging import get_logger
from faultroute.registry import ErrorRegistry

logger = get_logger(__name__)

ERRORS_STATE_KEY = "faultroute_errors"


def recorded_errors(request: Request) -> list[BaseException]:
    """Errors recorded for this request so far, oldest first."""
    errors: list[BaseException] | None = getattr(request.state, ERRORS_STATE_KEY, None)
    if errors is None:
        errors = []
        setattr(request.state, ERRORS_STATE_KEY, errors)
    return errors


def record_error(request: Request, err: BaseException) -> None:
    """Attach an error to the request without raising it.

    The endpoint keeps running and returns normally; once it's done, the last
    recorded error is dispatched and its handler may replace the response.
    """
    recorded_errors(request).append(err)


class ErrorDispatchMiddleware(BaseHTTPMiddleware):
    """Dispatch the terminal error of each request to its registered handler.

    - Exceptions escaping the endpoint are recorded as the terminal error
    - Without any recorded error the endpoint response passes through untouched
    - Otherwise the handler's response replaces the endpoint's

    Usage:
        app.add_middleware(ErrorDispatchMiddleware, registry=registry)
    """

    def __init__(self, app: ASGIApp, registry: ErrorRegistry) -> None:
        super().__init__(app)
        self.registry = registry

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        # Created here so the endpoint's Request shares the same list via scope["state"]
        errors = recorded_errors(request)

        response: Response | None
        try:
            response = await call_next(request)
        except Exception as exc:
            errors.append(exc)
            response = None

        if not errors and response is not None:
            return response

        ctx = ErrorContext(request=request, response=response)
        self.registry.dispatch(errors[-1], ctx)

        if ctx.response is None:
            logger.warning(
                "error_left_unanswered",
                error_type=type(errors[-1]).__name__,
                path=request.url.path,
            )
            return Response(status_code=self.registry.settings.fallback_status_code)
        return ctx.response


def install(app: FastAPI, registry: ErrorRegistry) -> None:
    """Add ErrorDispatchMiddleware for ``registry`` to an app.

    Call before the app starts serving; Starlette freezes its middleware stack then.
    """
    app.add_middleware(ErrorDispatchMiddleware, registry=registry)
