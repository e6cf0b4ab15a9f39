"""
Pydantic schemas for the permission ledger routes.

Requests are validated here before any ledger logic runs; the creator never
comes from the body, see `dependencies.get_creator`.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from app.features.permissions.models import MAX_IDENTITY, MAX_PERMISSION_LENGTH


# ============================================================================
# Request Schemas
# ============================================================================

class ScopedRequest(BaseModel):
    """Identity and service every operation is scoped by."""
    identity: int = Field(..., ge=1, le=MAX_IDENTITY, strict=True, description="Principal the permissions apply to")
    service: str = Field(..., min_length=1, max_length=255, description="Owning service namespace")


class PermissionsRequest(ScopedRequest):
    permissions: List[str] = Field(..., min_length=1, description="Permission strings")

    @field_validator("permissions")
    @classmethod
    def permissions_not_blank_or_too_long(cls, v: List[str]) -> List[str]:
        if any(not permission.strip() for permission in v):
            raise ValueError("Permissions must not be blank")
        if any(len(permission) > MAX_PERMISSION_LENGTH for permission in v):
            raise ValueError(f"Permissions must be at most {MAX_PERMISSION_LENGTH} characters")
        return v


class GiveRequest(PermissionsRequest):
    """
    Schema for granting permissions.

    Permissions may contain `{name}` placeholders filled from `data`,
    e.g. `@admin:{user}:api.v1.admin` with `{"user": 42}`.
    """
    service: str = Field(..., min_length=3, max_length=255, description="Owning service namespace")
    data: Dict[str, Any] = Field(default_factory=dict, description="Values for permission placeholders")


class LoseRequest(PermissionsRequest):
    """Schema for revoking permissions."""


class HasRequest(PermissionsRequest):
    """Schema for checking permissions."""


class ListRequest(ScopedRequest):
    """Schema for listing the permissions of an identity in a service."""


# ============================================================================
# Response Schemas
# ============================================================================

class PermissionHeldResponse(BaseModel):
    permission: str
    has: bool


class OperationResponse(BaseModel):
    """Envelope shared by every ledger response."""
    status_code: int
    status_reason: str
    data: Optional[Any] = None
    meta: Optional[Dict[str, Any]] = None
