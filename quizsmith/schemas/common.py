from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """
    Standard error envelope.
    Every typed failure and every unhandled exception is returned in this shape.
    """
    status: str = "error"
    message: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
