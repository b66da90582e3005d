"""
shopshap/schemas/response.py

Purpose: Shared response envelopes

- ErrorResponse for app-level exception handlers
- ApiResult, the uniform {success, message} shape every verification
  outcome is rendered with
"""

from pydantic import BaseModel, Field
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class ApiResult(BaseModel):
    """
    Uniform result shape returned by the verification endpoints.
    reason is a machine-readable failure code, absent on success.
    """
    success: bool
    message: str
    reason: Optional[str] = Field(default=None, description="Failure code, e.g. RATE_LIMITED")
