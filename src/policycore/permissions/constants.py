"""Permission scopes and API verbs.

Provides:
- ``PermissionScope``: levels of the authority tree (stable wire values).
- ``APIVerb``: API action tags (stable wire values).
- ``read_verb_group()`` / ``read_write_verb_group()``: named verb sets.
"""

from __future__ import annotations

from enum import Enum


class PermissionScope(str, Enum):
    """A named level in the authority tree.

    ``user`` is authenticated, not authorized, and never appears in the
    scope hierarchy.
    """

    USER = "user"
    PROJECT = "project"
    CLUSTER = "cluster"
    REGISTRY = "registry"
    NAMESPACE = "namespace"
    SETTINGS = "settings"
    RELEASE = "release"


class APIVerb(str, Enum):
    """Action tag attached to an API endpoint."""

    GET = "get"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Canonical ordering used when verbs are serialized
VERB_ORDER: tuple[APIVerb, ...] = tuple(APIVerb)

_READ_VERBS = frozenset({APIVerb.GET, APIVerb.LIST})
_READ_WRITE_VERBS = frozenset(APIVerb)


def read_verb_group() -> frozenset[APIVerb]:
    """``{get, list}``"""
    return _READ_VERBS


def read_write_verb_group() -> frozenset[APIVerb]:
    """``{get, list, create, update, delete}``"""
    return _READ_WRITE_VERBS


__all__ = [
    "APIVerb",
    "PermissionScope",
    "VERB_ORDER",
    "read_verb_group",
    "read_write_verb_group",
]
