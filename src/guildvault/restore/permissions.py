from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..interfaces import ResolvedOverwrite, RoleRef
from ..models import PermissionRule

log = logging.getLogger("guildvault.permissions")


def find_role(roles: Iterable[RoleRef], name: str) -> Optional[RoleRef]:
    """First role with exactly this name, if any."""
    for role in roles:
        if role.name == name:
            return role
    return None


def remap_overwrites(rules: Sequence[PermissionRule], roles: Sequence[RoleRef]) -> List[ResolvedOverwrite]:
    """Resolve named permission rules against the target's current roles.

    Rules whose role cannot be found are dropped; duplicate role names resolve to
    the first match.
    """
    resolved: List[ResolvedOverwrite] = []
    for rule in rules:
        role = find_role(roles, rule.role_name)
        if role is None:
            log.debug("Dropping overwrite for unknown role %r", rule.role_name)
            continue
        resolved.append(ResolvedOverwrite(role_id=role.id, allow=int(rule.allow), deny=int(rule.deny)))
    return resolved
