from typing import Any

from pydantic import Field

from app.api.payloads.common import CamelModel


class ErrorResponse(CamelModel):
    """Error envelope. ``requiresAuth`` is only true when the client must send the user through login again."""

    success: bool = False
    message: str
    error: str
    requires_auth: bool = False
    details: list[dict[str, Any]] | None = Field(default=None, description="Field-level validation failures")
