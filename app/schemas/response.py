"""
app/schemas/response.py

Purpose: Outgoing JSON envelopes for non-webhook endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Dict, Literal


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"] = "healthy"
    timestamp: float
    environment: str
    version: str
    store_backend: str
    checks: Dict[str, str] = Field(default_factory=dict)
