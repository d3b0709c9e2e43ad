from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PermissionKeyRead(BaseModel):
    code: str
    description: str


class RolePermissionsRead(BaseModel):
    role: str
    permissions: dict[str, bool]


class RolePermissionConfigRead(BaseModel):
    roles: dict[str, dict[str, int]]
    updated_at: Optional[datetime] = None
    updated_by_user_id: Optional[int] = None


class RolePermissionConfigUpdate(BaseModel):
    """Role grids merged into the stored record; roles not listed are left untouched."""
    roles: dict[str, dict[str, int]]


class RolePermissionFlagUpdate(BaseModel):
    flag: int = Field(..., ge=0, le=1)
