"""Scope hierarchy: which scopes may nest under which.

``SCOPE_HIERARCHY`` is the single source of truth for scope nesting. The
validator walks it, and the role templates are written against it.
Adding a scope means adding it here and no other logic changes. Documents
that leave the new scope out govern it with their own verbs (see
``policycore.permissions.validator``).
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .constants import PermissionScope

ROOT_SCOPE = PermissionScope.PROJECT

# ── Scope Hierarchy ─────────────────────────────────────
# Parent scope → scopes allowed directly beneath it.

SCOPE_HIERARCHY: Mapping[PermissionScope, frozenset[PermissionScope]] = MappingProxyType(
    {
        PermissionScope.PROJECT: frozenset(
            {
                PermissionScope.CLUSTER,
                PermissionScope.REGISTRY,
                PermissionScope.SETTINGS,
            }
        ),
        PermissionScope.CLUSTER: frozenset({PermissionScope.NAMESPACE}),
        PermissionScope.NAMESPACE: frozenset({PermissionScope.RELEASE}),
        PermissionScope.REGISTRY: frozenset(),
        PermissionScope.SETTINGS: frozenset(),
        PermissionScope.RELEASE: frozenset(),
        PermissionScope.USER: frozenset(),
    }
)


def allowed_children(scope: PermissionScope) -> frozenset[PermissionScope]:
    """Return the scopes that may appear directly beneath ``scope``."""
    return SCOPE_HIERARCHY.get(scope, frozenset())


__all__ = [
    "ROOT_SCOPE",
    "SCOPE_HIERARCHY",
    "allowed_children",
]
