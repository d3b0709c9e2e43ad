"""
Role permission resolution.

The permission record is a single settings row holding one grid per role::

    {"all": {"addDues": 1, ...}, "Union Treasurer": {"collectPayments": 1, ...}}

The "all" grid is a baseline shared by every role and the "admin" role is
granted everything without consulting the record. Lookups are fail-closed:
any error while reading or evaluating the record denies access.
"""
import logging
from collections.abc import Mapping
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.permissions import (
    PERMISSION_KEYS,
    PERM_ADD_EDIT_MEMBERS,
    ROLE_PERMISSIONS_KEY,
    ADMIN_ROLE,
    ALL_ROLES,
    CONFIGURABLE_ROLES,
)
from app.models.auth import User
from app.models.settings import SystemSettings
from app.services.activity import record_audit

logger = logging.getLogger(__name__)

PermissionTable = dict[str, dict[str, int]]


def is_admin_role(role: Optional[str]) -> bool:
    return isinstance(role, str) and role.lower() == ADMIN_ROLE


def default_permissions(granted: bool = False) -> dict[str, bool]:
    return {key: granted for key in PERMISSION_KEYS}


def empty_role_grid() -> dict[str, int]:
    return {key: 0 for key in PERMISSION_KEYS}


def has_permission(role: Optional[str], permission_key: str, permission_table: Optional[Mapping]) -> bool:
    if is_admin_role(role):
        return True

    if permission_table is None:
        return False

    try:
        all_grid = permission_table.get(ALL_ROLES) or {}
        if all_grid.get(permission_key) == 1:
            return True

        role_grid = permission_table.get(role) or {}
        return role_grid.get(permission_key) == 1
    except Exception:
        logger.error(f"Error checking permission {permission_key} for role {role!r}", exc_info=True)
        return False


def resolve_all_permissions(role: Optional[str], permission_table: Optional[Mapping]) -> dict[str, bool]:
    """
    Resolve every permission key for a role.

    The "all" grid is applied first, then the role's own grid. A grid only
    overwrites the keys it defines, so a role grid that omits a key keeps
    whatever the "all" grid granted for it.
    """
    if is_admin_role(role):
        return default_permissions(True)

    if permission_table is None:
        return default_permissions()

    try:
        result = default_permissions()
        for grid in (permission_table.get(ALL_ROLES), permission_table.get(role)):
            if not grid:
                continue
            for key in PERMISSION_KEYS:
                value = grid.get(key)
                if value is not None:
                    result[key] = value == 1
        return result
    except Exception:
        logger.error(f"Error resolving permissions for role {role!r}", exc_info=True)
        return default_permissions()


def migrate_legacy_grid(value: Any) -> dict[str, int]:
    """Older records stored one flag per role; it only ever gated member editing."""
    grid = empty_role_grid()
    grid[PERM_ADD_EDIT_MEMBERS] = 1 if value == 1 else 0
    return grid


def migrate_legacy_permissions(raw: Optional[Mapping]) -> tuple[PermissionTable, bool]:
    """
    Convert a stored record into per-role grids.

    Returns the table and whether any legacy single-flag role was migrated.
    Grids are copied as stored; non-role metadata (timestamps, user ids) is dropped.
    """
    table: PermissionTable = {}
    migrated = False

    for role, grid in (raw or {}).items():
        if isinstance(grid, Mapping):
            table[role] = dict(grid)
        elif isinstance(grid, (int, float)):
            table[role] = migrate_legacy_grid(grid)
            migrated = True

    return table, migrated


def normalize_role_grid(grid: Optional[Mapping]) -> dict[str, int]:
    grid = grid or {}
    return {key: 1 if grid.get(key) == 1 else 0 for key in PERMISSION_KEYS}


def normalize_permission_table(raw: Optional[Mapping]) -> tuple[PermissionTable, bool]:
    table, migrated = migrate_legacy_permissions(raw)
    return {role: normalize_role_grid(grid) for role, grid in table.items()}, migrated


def default_permission_table() -> PermissionTable:
    return {role: empty_role_grid() for role in CONFIGURABLE_ROLES}


def _validate_grid(role: str, grid: Mapping) -> None:
    if not role or not role.strip():
        raise ValueError("Role name is required")
    if is_admin_role(role):
        raise ValueError("The admin role always has every permission")
    for key, flag in grid.items():
        if key not in PERMISSION_KEYS:
            raise ValueError(f"Unknown permission key: {key}")
        if flag not in (0, 1):
            raise ValueError(f"Invalid flag for {key}: {flag}. Must be 0 or 1")


async def _get_settings_row(db: AsyncSession) -> Optional[SystemSettings]:
    result = await db.execute(select(SystemSettings).where(SystemSettings.key == ROLE_PERMISSIONS_KEY))
    return result.scalar_one_or_none()


async def get_role_permission_config(db: AsyncSession) -> Optional[PermissionTable]:
    """
    Load the role permission record, or None when it has not been created yet.

    Legacy single-flag roles are migrated and the migrated grids written back.
    """
    row = await _get_settings_row(db)
    if row is None:
        return None

    table, migrated = migrate_legacy_permissions(row.value)
    if migrated:
        try:
            row.value = normalize_permission_table(table)[0]
            await db.commit()
            logger.info("Migrated legacy role permissions to per-key grids")
        except Exception as e:
            await db.rollback()
            logger.warning(f"Could not persist migrated role permissions: {e}")
            # Rollback expires everything loaded in this session, including the caller's user
            for obj in list(db.identity_map.values()):
                await db.refresh(obj)

    return table


async def ensure_role_permission_config(db: AsyncSession, user: Optional[User] = None) -> SystemSettings:
    """Return the permission record, creating it with every permission disabled if absent."""
    row = await _get_settings_row(db)
    if row is not None:
        await get_role_permission_config(db)
        return row

    row = SystemSettings(
        key=ROLE_PERMISSIONS_KEY,
        value=default_permission_table(),
        description="Per-role permission grids",
        created_by_user_id=user.id if user else None,
        updated_by_user_id=user.id if user else None,
    )
    db.add(row)
    await db.commit()
    await db.refresh(row)
    logger.info("Created default role permissions record")
    return row


async def check_permission(db: AsyncSession, role: Optional[str], permission_key: str) -> bool:
    if is_admin_role(role):
        return True

    try:
        table = await get_role_permission_config(db)
    except Exception:
        logger.error("Failed to load role permissions", exc_info=True)
        return False

    if table is None:
        logger.warning("Role permissions record not found")

    return has_permission(role, permission_key, table)


async def get_permissions_for_role(db: AsyncSession, role: Optional[str]) -> dict[str, bool]:
    if is_admin_role(role):
        return default_permissions(True)

    try:
        table = await get_role_permission_config(db)
    except Exception:
        logger.error("Failed to load role permissions", exc_info=True)
        return default_permissions()

    return resolve_all_permissions(role, table)


async def _save_table(db: AsyncSession, row: SystemSettings, table: PermissionTable, user: User, action: str, details: dict) -> PermissionTable:
    # Reassign so the JSON column is flagged as modified
    row.value = table
    row.updated_by_user_id = user.id
    await db.commit()
    await db.refresh(row)

    await record_audit(db, action, user, details)
    await db.refresh(row)
    return row.value


async def set_role_permission(db: AsyncSession, role: str, permission_key: str, flag: int, user: User) -> PermissionTable:
    _validate_grid(role, {permission_key: flag})

    row = await ensure_role_permission_config(db, user)
    table, _ = normalize_permission_table(row.value)
    table.setdefault(role, empty_role_grid())[permission_key] = flag

    return await _save_table(
        db, row, table, user,
        "set_role_permission",
        {"role": role, "permission": permission_key, "flag": flag},
    )


async def save_role_permissions(db: AsyncSession, roles: Mapping[str, Mapping[str, int]], user: User) -> PermissionTable:
    """Merge the given role grids into the stored record."""
    for role, grid in roles.items():
        _validate_grid(role, grid)

    row = await ensure_role_permission_config(db, user)
    table, _ = normalize_permission_table(row.value)
    for role, grid in roles.items():
        merged = table.get(role, empty_role_grid())
        merged.update(grid)
        table[role] = merged

    return await _save_table(db, row, table, user, "save_role_permissions", {"roles": sorted(roles)})


async def reset_role_permissions(db: AsyncSession, user: User) -> PermissionTable:
    row = await ensure_role_permission_config(db, user)
    table, _ = normalize_permission_table(row.value)
    table = {**default_permission_table(), **{role: empty_role_grid() for role in table}}

    return await _save_table(db, row, table, user, "reset_role_permissions", {"roles": sorted(table)})
