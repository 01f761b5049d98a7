"""Registration and dispatch.

An ErrorRegistry holds everything dispatch needs: the error tree, the fallback
handler and the global middleware. Build one at startup, register handlers,
then hand it to the HTTP middleware (see faultroute.middleware.install).

    registry = ErrorRegistry()
    registry.register(json_handler(404, "not_found"), ErrNotFound)
    registry.use_global(log_errors())

Registration is not concurrency-safe and must finish before requests are
served. Dispatch only reads and may run from any number of requests at once.
"""

from collections.abc import Callable

from faultroute.chain import Identity, describe
from faultroute.config import Settings
from faultroute.config import settings as default_settings
from faultroute.exceptions import FaultRouteError, InvalidArgumentError
from faultroute.handlers import (
    ErrorContext,
    ErrorHandler,
    ErrorMiddleware,
    chain_middleware,
    make_fallback_handler,
)
from faultroute.logging import get_logger
from faultroute.tree import ErrorNode, ErrorTree

logger = get_logger(__name__)


class ErrorRegistry:
    """Error tree, fallback handler and global middleware for one application.

    ``settings`` defaults to the FAULTROUTE_* environment; pass an explicit
    Settings to keep tests or multiple apps isolated.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings
        self.tree = ErrorTree()
        self.fallback: ErrorHandler = make_fallback_handler(self.settings)
        self.global_middleware: ErrorMiddleware = chain_middleware()

    def register(self, handler: ErrorHandler, *identities: Identity) -> list[ErrorNode]:
        """Associate ``handler`` with each identity, in argument order.

        Not atomic: if one identity fails, the identities before it in the same
        call stay registered and the ones after it are not attempted.

        Raises:
            InvalidArgumentError: handler missing, no identities, or a nil identity.
            DuplicateRegistrationError: an identity is already registered.
        """
        if handler is None or not callable(handler):
            raise InvalidArgumentError("handler cannot be nil")
        if not identities:
            raise InvalidArgumentError("at least one error identity is required")

        nodes: list[ErrorNode] = []
        for identity in identities:
            try:
                node = self.tree.insert(identity, handler)
            except FaultRouteError as exc:
                logger.warning("registration_rejected", reason=exc.message)
                raise
            logger.debug("handler_registered", identity=node.label, depth=node.depth)
            nodes.append(node)
        return nodes

    def register_with_middleware(
        self,
        middleware: ErrorMiddleware,
        handler: ErrorHandler,
        *identities: Identity,
    ) -> list[ErrorNode]:
        """Register ``middleware(handler)`` for the identities."""
        if middleware is None:
            raise InvalidArgumentError("middleware cannot be nil")
        if handler is None:
            raise InvalidArgumentError("handler cannot be nil")
        return self.register(middleware(handler), *identities)

    def handler(self, *identities: Identity) -> Callable[[ErrorHandler], ErrorHandler]:
        """Decorator form of register(); returns the function unchanged.

        Usage:
            @registry.handler(ErrNotFound)
            def not_found(exc: BaseException, ctx: ErrorContext) -> None:
                ctx.error(404, "not_found", str(exc))
        """

        def decorator(fn: ErrorHandler) -> ErrorHandler:
            self.register(fn, *identities)
            return fn

        return decorator

    def use_global(self, *middlewares: ErrorMiddleware) -> None:
        """Replace the middleware wrapped around every dispatched handler.

        The first middleware given runs outermost. No arguments resets to none.
        """
        self.global_middleware = chain_middleware(*middlewares)

    def set_fallback(self, handler: ErrorHandler | None) -> None:
        """Replace the handler used when nothing matches. None is ignored."""
        if handler is None:
            return
        self.fallback = handler

    def resolve(self, err: BaseException) -> ErrorHandler | None:
        return self.tree.resolve(err)

    def dispatch(self, err: BaseException | None, ctx: ErrorContext) -> None:
        """Run the most specific handler for ``err``, or the fallback."""
        if err is None:
            return

        node = self.tree.find(err)
        if node is None:
            logger.debug("error_unmatched", error_type=type(err).__name__)
            handler = self.fallback
        else:
            logger.debug("error_matched", error=describe(err), identity=node.label)
            handler = node.handler

        self.global_middleware(handler)(err, ctx)
