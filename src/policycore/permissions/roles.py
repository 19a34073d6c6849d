"""Built-in project roles and their policy templates.

Provides:
- ``RoleKind``: role a principal holds in a project.
- ``ADMIN_POLICY`` / ``DEVELOPER_POLICY`` / ``VIEWER_POLICY``: templates.
- ``ROLE_POLICIES``: role kind → template.
- ``policy_for_role()``: lookup that returns None for custom roles.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .constants import PermissionScope, read_verb_group, read_write_verb_group
from .documents import PolicyDocument


class RoleKind(str, Enum):
    """Role a principal holds in a project.

    ``custom`` roles carry a user-defined policy that only a stored-policy
    loader can resolve.
    """

    ADMIN = "admin"
    DEVELOPER = "developer"
    VIEWER = "viewer"
    CUSTOM = "custom"


# ── Role → Policy Templates ─────────────────────────────

ADMIN_POLICY: tuple[PolicyDocument, ...] = (
    PolicyDocument(
        scope=PermissionScope.PROJECT,
        verbs=read_write_verb_group(),
    ),
)

DEVELOPER_POLICY: tuple[PolicyDocument, ...] = (
    PolicyDocument(
        scope=PermissionScope.PROJECT,
        verbs=read_write_verb_group(),
        children={
            PermissionScope.SETTINGS: PolicyDocument(
                scope=PermissionScope.SETTINGS,
                verbs=read_verb_group(),
            ),
        },
    ),
)

VIEWER_POLICY: tuple[PolicyDocument, ...] = (
    PolicyDocument(
        scope=PermissionScope.PROJECT,
        verbs=read_verb_group(),
        children={
            PermissionScope.SETTINGS: PolicyDocument(
                scope=PermissionScope.SETTINGS,
                verbs=frozenset(),
            ),
        },
    ),
)

ROLE_POLICIES: Mapping[RoleKind, tuple[PolicyDocument, ...]] = MappingProxyType(
    {
        RoleKind.ADMIN: ADMIN_POLICY,
        RoleKind.DEVELOPER: DEVELOPER_POLICY,
        RoleKind.VIEWER: VIEWER_POLICY,
    }
)


def policy_for_role(kind: RoleKind | str) -> list[PolicyDocument] | None:
    """Return the policy template for a built-in role kind.

    Returns None for ``custom`` and for kinds this version does not know.
    """
    try:
        role = RoleKind(kind)
    except ValueError:
        return None

    template = ROLE_POLICIES.get(role)
    return list(template) if template is not None else None


__all__ = [
    "ADMIN_POLICY",
    "DEVELOPER_POLICY",
    "ROLE_POLICIES",
    "RoleKind",
    "VIEWER_POLICY",
    "policy_for_role",
]
