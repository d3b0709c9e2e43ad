import pytest

from app.core.permissions import PERMISSION_KEYS
from app.services.permissions import (
    has_permission,
    resolve_all_permissions,
    migrate_legacy_permissions,
    normalize_permission_table,
    default_permission_table,
)


class ExplodingTable(dict):
    def get(self, *args, **kwargs):
        raise RuntimeError("backend unavailable")


class ExplodingGrid(dict):
    """Answers the first lookup, then fails part way through resolution."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    def get(self, *args, **kwargs):
        self.calls += 1
        if self.calls > 1:
            raise RuntimeError("read failed")
        return super().get(*args, **kwargs)


@pytest.mark.parametrize("role", ["admin", "Admin", "ADMIN"])
@pytest.mark.parametrize("table", [None, {}, {"admin": {"addDues": 0}}, ExplodingTable()])
def test_admin_has_every_permission(role, table) -> None:
    for key in PERMISSION_KEYS:
        assert has_permission(role, key, table) is True
    assert resolve_all_permissions(role, table) == {key: True for key in PERMISSION_KEYS}


def test_missing_table_denies_everything() -> None:
    for key in PERMISSION_KEYS:
        assert has_permission("Union President", key, None) is False
    assert resolve_all_permissions("Union President", None) == {key: False for key in PERMISSION_KEYS}


def test_all_grid_grants_even_when_role_denies() -> None:
    table = {"all": {"addDues": 1}, "member": {"addDues": 0}}
    assert has_permission("member", "addDues", table) is True


def test_role_grid_grants_when_all_denies() -> None:
    table = {"all": {"makeWithdrawal": 0}, "Union Treasurer": {"makeWithdrawal": 1}}
    assert has_permission("Union Treasurer", "makeWithdrawal", table) is True
    assert has_permission("Union Mother", "makeWithdrawal", table) is False


def test_only_exact_one_grants() -> None:
    table = {"member": {"addDues": True, "addBudget": "1", "addMisc": 2, "addEvents": 1}}
    assert has_permission("member", "addDues", table) is True  # True == 1
    assert has_permission("member", "addBudget", table) is False
    assert has_permission("member", "addMisc", table) is False
    assert has_permission("member", "addEvents", table) is True


def test_unknown_role_and_key_deny() -> None:
    table = {"all": {"addDues": 0}}
    assert has_permission("stranger", "addDues", table) is False
    assert has_permission("stranger", "notAKey", table) is False
    assert has_permission(None, "addDues", table) is False


def test_has_permission_fails_closed_on_error() -> None:
    assert has_permission("member", "addDues", ExplodingTable()) is False


def test_resolve_layers_role_over_all() -> None:
    table = {
        "all": {"addDues": 1, "addEvents": 1},
        "Union Organizing Secretary": {"addDues": 0, "addMinutesReports": 1},
    }
    resolved = resolve_all_permissions("Union Organizing Secretary", table)

    assert resolved["addDues"] is False
    # Omitted by the role grid, so the "all" value stands
    assert resolved["addEvents"] is True
    assert resolved["addMinutesReports"] is True
    assert resolved["makeWithdrawal"] is False
    assert set(resolved) == set(PERMISSION_KEYS)


def test_resolve_unknown_role_uses_all_grid() -> None:
    resolved = resolve_all_permissions("member", {"all": {"addContribution": 1}})
    assert resolved == {key: key == "addContribution" for key in PERMISSION_KEYS}


def test_resolve_returns_all_false_on_induced_failure() -> None:
    table = {
        "all": ExplodingGrid({key: 1 for key in PERMISSION_KEYS}),
        "member": {"addDues": 1},
    }
    resolved = resolve_all_permissions("member", table)

    assert resolved == {key: False for key in PERMISSION_KEYS}
    assert len(resolved) == 9


def test_resolve_fails_closed_when_table_lookup_raises() -> None:
    assert resolve_all_permissions("member", ExplodingTable()) == {key: False for key in PERMISSION_KEYS}


def test_migrate_legacy_single_flags() -> None:
    raw = {
        "Union President": 1,
        "Union Mother": 0,
        "all": {"addDues": 1},
        "updatedAt": "2024-01-01T00:00:00Z",
        "updatedBy": "someone",
    }
    table, migrated = migrate_legacy_permissions(raw)

    assert migrated is True
    assert table["Union President"]["addEditMembers"] == 1
    assert sum(table["Union President"].values()) == 1
    assert set(table["Union President"]) == set(PERMISSION_KEYS)
    assert table["Union Mother"] == {key: 0 for key in PERMISSION_KEYS}
    assert table["all"] == {"addDues": 1}
    assert "updatedAt" not in table
    assert "updatedBy" not in table


def test_migrate_grid_record_is_not_flagged() -> None:
    table, migrated = migrate_legacy_permissions({"all": {"addDues": 1}})
    assert migrated is False
    assert table == {"all": {"addDues": 1}}

    assert migrate_legacy_permissions(None) == ({}, False)


def test_migrated_table_resolves() -> None:
    table, _ = migrate_legacy_permissions({"Union President": 1})
    assert has_permission("Union President", "addEditMembers", table) is True
    assert has_permission("Union President", "addDues", table) is False


def test_normalize_pads_missing_keys() -> None:
    table, migrated = normalize_permission_table({"all": {"addDues": 1, "addBudget": 5}})
    assert migrated is False
    assert table["all"]["addDues"] == 1
    assert table["all"]["addBudget"] == 0
    assert set(table["all"]) == set(PERMISSION_KEYS)


def test_default_table_covers_union_roles() -> None:
    table = default_permission_table()
    assert "all" in table
    assert "Union Treasurer" in table
    assert "admin" not in table
    assert all(flag == 0 for grid in table.values() for flag in grid.values())
