"""Error response envelope.

Built-in handlers and the fallback handler all answer with
{"error": {"code": "...", "message": "...", "status": 404}}. ``status``
repeats the HTTP status so clients that only keep the body still see it.
"""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Machine-readable code plus the message shown to the client."""

    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    """Top-level body of every response written through ErrorContext.error()."""

    error: ErrorDetail
