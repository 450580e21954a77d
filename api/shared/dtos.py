"""Shared DTOs for the support chat API."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BaseDTO(BaseModel):
    """Base DTO with common configuration."""

    class Config:
        from_attributes = True
        populate_by_name = True


class HealthCheckResponse(BaseDTO):
    """Liveness response DTO."""
    status: str = Field(default="ok", description="Service status")


class DbHealthResponse(BaseDTO):
    """Database connectivity response DTO."""
    db: str = Field(default="connected", description="Database status")
    time: datetime = Field(description="Database server timestamp")


class ErrorResponse(BaseDTO):
    """Error response DTO."""
    error: str = Field(description="Error message")
    error_code: Optional[str] = Field(default=None, description="Error code")
