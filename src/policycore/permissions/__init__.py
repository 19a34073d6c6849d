"""Hierarchical scope-based authorization.

Defines:
- PermissionScope / APIVerb: scope and verb enumerations
- SCOPE_HIERARCHY: which scopes nest under which
- PolicyDocument / NameOrUInt / RequestAction: policy and request models
- walk(): validate a document and resolve effective documents per scope
- has_access(): decide whether a policy admits a request
- ROLE_POLICIES: built-in role kind → policy templates
- build_request_scopes(): turn endpoint parameters into a request
"""

from .access import has_access
from .constants import (
    VERB_ORDER,
    APIVerb,
    PermissionScope,
    read_verb_group,
    read_write_verb_group,
)
from .documents import (
    NameOrUInt,
    PolicyDocument,
    RequestAction,
    RequestScopes,
    dump_policy,
    parse_policy,
)
from .hierarchy import ROOT_SCOPE, SCOPE_HIERARCHY, allowed_children
from .request import (
    SCOPE_PARAMS,
    EndpointMetadata,
    build_request_scopes,
    parse_uint_param,
)
from .roles import (
    ADMIN_POLICY,
    DEVELOPER_POLICY,
    ROLE_POLICIES,
    VIEWER_POLICY,
    RoleKind,
    policy_for_role,
)
from .validator import WalkResult, walk

__all__ = [
    "ADMIN_POLICY",
    "APIVerb",
    "DEVELOPER_POLICY",
    "EndpointMetadata",
    "NameOrUInt",
    "PermissionScope",
    "PolicyDocument",
    "ROLE_POLICIES",
    "ROOT_SCOPE",
    "RequestAction",
    "RequestScopes",
    "RoleKind",
    "SCOPE_HIERARCHY",
    "SCOPE_PARAMS",
    "VERB_ORDER",
    "VIEWER_POLICY",
    "WalkResult",
    "allowed_children",
    "build_request_scopes",
    "dump_policy",
    "has_access",
    "parse_policy",
    "parse_uint_param",
    "policy_for_role",
    "read_verb_group",
    "read_write_verb_group",
    "walk",
]
