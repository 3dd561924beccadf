"""
Response bodies shared by several routers.
"""

from typing import Any

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Acknowledgement for writes that return no resource, e.g. a delete."""
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    """Body of every non-2xx answer produced from an application error."""
    error: str = Field(..., description="Error class, e.g. NotFoundError")
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
