"""Exceptions raised by faultroute itself.

Only registration can fail. Lookup and dispatch never raise on a missing
handler: an unmatched error is routed to the fallback handler instead.
"""


class FaultRouteError(Exception):
    """Base class for all faultroute exceptions."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidArgumentError(FaultRouteError, ValueError):
    """Raised when registration receives a missing or unusable identity or handler."""


class DuplicateRegistrationError(FaultRouteError):
    """Raised when an identity is already present in the error tree."""

    def __init__(self, identity: object, label: str) -> None:
        self.identity = identity
        super().__init__(f"duplicate registration: {label}")
