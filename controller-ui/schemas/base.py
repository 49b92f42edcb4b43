# controller-ui/schemas/base.py
"""
Base schemas for API responses
"""

from pydantic import BaseModel, Field
from typing import TypeVar, Generic, Optional
from datetime import datetime

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """
    Standard API response wrapper
    All API responses should follow this format
    """
    success: bool = True
    message: str = "Operation successful"
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    """
    Standard error response
    Used for 4xx and 5xx responses
    """
    success: bool = False
    error: str
    error_code: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "IP address 192.168.1.5 must lie within a managed route",
                "error_code": "ADDRESS_NOT_IN_MANAGED_ROUTE",
                "details": {
                    "operation": "add IP assignment for member a1b2c3d4e5 of network 8056c2e21c000001",
                    "errors": [
                        {
                            "field": "ipAddress",
                            "kind": "failed_custom_rule",
                            "message": "IP address 192.168.1.5 must lie within a managed route"
                        }
                    ],
                    "submitted": {"ipAddress": "192.168.1.5"}
                },
                "timestamp": "2025-12-26T10:00:00Z"
            }
        }


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = "healthy"
    service: str = "controller-ui"
    version: str = "1.0.0"
    uptime_seconds: Optional[float] = None
    database: str = "connected"
    timestamp: datetime = Field(default_factory=datetime.utcnow)
