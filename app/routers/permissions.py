from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_db
from app.core.permissions import ALL_PERMISSIONS, PERMISSION_KEYS
from app.schemas.common import DataResponse
from app.schemas.settings import (
    PermissionKeyRead,
    RolePermissionsRead,
    RolePermissionConfigRead,
    RolePermissionConfigUpdate,
    RolePermissionFlagUpdate,
)
from app.services import permissions as permission_service
from app.deps import CurrentUser, AdminUser

router = APIRouter(prefix="/permissions", tags=["Permissions"])


async def _config_response(db: AsyncSession, admin) -> RolePermissionConfigRead:
    row = await permission_service.ensure_role_permission_config(db, admin)
    table, _ = permission_service.normalize_permission_table(row.value)
    return RolePermissionConfigRead(
        roles=table,
        updated_at=row.updated_at,
        updated_by_user_id=row.updated_by_user_id,
    )


@router.get("/keys", response_model=DataResponse[list[PermissionKeyRead]])
async def get_permission_keys(user: CurrentUser):
    return DataResponse(data=[PermissionKeyRead(**p) for p in ALL_PERMISSIONS])


@router.get("/me", response_model=DataResponse[RolePermissionsRead])
async def get_my_permissions(user: CurrentUser, db: Annotated[AsyncSession, Depends(get_db)]):
    permissions = await permission_service.get_permissions_for_role(db, user.role)
    return DataResponse(data=RolePermissionsRead(role=user.role, permissions=permissions))


@router.get("/roles/{role}", response_model=DataResponse[RolePermissionsRead])
async def get_role_permissions(
    role: str,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    permissions = await permission_service.get_permissions_for_role(db, role)
    return DataResponse(data=RolePermissionsRead(role=role, permissions=permissions))


@router.get("/config", response_model=DataResponse[RolePermissionConfigRead])
async def get_permission_config(admin: AdminUser, db: Annotated[AsyncSession, Depends(get_db)]):
    return DataResponse(data=await _config_response(db, admin))


@router.put("/config", response_model=DataResponse[RolePermissionConfigRead])
async def save_permission_config(
    data: RolePermissionConfigUpdate,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        await permission_service.save_role_permissions(db, data.roles, admin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return DataResponse(data=await _config_response(db, admin))


@router.patch("/config/{role}/{permission_key}", response_model=DataResponse[RolePermissionConfigRead])
async def set_permission_flag(
    role: str,
    permission_key: str,
    data: RolePermissionFlagUpdate,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    if permission_key not in PERMISSION_KEYS:
        raise HTTPException(status_code=404, detail=f"Unknown permission key: {permission_key}")

    try:
        await permission_service.set_role_permission(db, role, permission_key, data.flag, admin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return DataResponse(data=await _config_response(db, admin))


@router.post("/config/reset", response_model=DataResponse[RolePermissionConfigRead])
async def reset_permission_config(admin: AdminUser, db: Annotated[AsyncSession, Depends(get_db)]):
    await permission_service.reset_role_permissions(db, admin)
    return DataResponse(data=await _config_response(db, admin))
