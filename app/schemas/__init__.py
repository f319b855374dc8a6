"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.retention import (
    RetentionPolicyResponse,
    RetentionPolicySchema,
    RetentionRunRequest,
    RetentionRunResponse,
)

__all__ = [
    "RetentionPolicySchema",
    "RetentionPolicyResponse",
    "RetentionRunRequest",
    "RetentionRunResponse",
]
