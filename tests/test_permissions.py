from __future__ import annotations

from guildvault.interfaces import ResolvedOverwrite, RoleRef
from guildvault.models import PermissionRule
from guildvault.restore.permissions import find_role, remap_overwrites


ROLES = [RoleRef(id=10, name="Admin"), RoleRef(id=11, name="Mod"), RoleRef(id=12, name="Admin")]


def test_find_role_returns_first_match():
    assert find_role(ROLES, "Admin").id == 10
    assert find_role(ROLES, "Nobody") is None


def test_remap_drops_only_rules_for_unknown_roles():
    rules = [
        PermissionRule("Admin", "8", "0"),
        PermissionRule("Ghost", "1", "2"),
        PermissionRule("Mod", "0", "2048"),
    ]
    assert remap_overwrites(rules, ROLES) == [
        ResolvedOverwrite(role_id=10, allow=8, deny=0),
        ResolvedOverwrite(role_id=11, allow=0, deny=2048),
    ]


def test_remap_keeps_bitsets_wider_than_64_bits():
    wide = str(1 << 70 | 1)
    [overwrite] = remap_overwrites([PermissionRule("Mod", wide, wide)], ROLES)
    assert overwrite.allow == (1 << 70 | 1)
    assert overwrite.deny == overwrite.allow


def test_remap_with_no_roles_is_empty():
    assert remap_overwrites([PermissionRule("Admin", "8", "0")], []) == []
