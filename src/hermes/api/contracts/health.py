"""Health check response model"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """API health check response"""

    status: str = Field(examples=["healthy"])
    service: str = Field(examples=["hermes-search"])
