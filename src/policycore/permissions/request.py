"""Resolve an endpoint call into the scopes it touches.

An endpoint declares the verb it performs and the scopes it lives under.
At call time the transport supplies the scope parameters (URL params,
gRPC metadata, ...) and ``build_request_scopes`` turns them into the
scope → action mapping that ``has_access`` evaluates.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from ..exceptions import BadRequestError
from .constants import APIVerb, PermissionScope
from .documents import NameOrUInt, RequestAction

# Scope → (request parameter, numeric?)
SCOPE_PARAMS: Mapping[PermissionScope, tuple[str, bool]] = MappingProxyType(
    {
        PermissionScope.PROJECT: ("project_id", True),
        PermissionScope.CLUSTER: ("cluster_id", True),
        PermissionScope.REGISTRY: ("registry_id", True),
        PermissionScope.SETTINGS: ("project_id", True),
        PermissionScope.NAMESPACE: ("namespace", False),
        PermissionScope.RELEASE: ("name", False),
    }
)


@dataclass(frozen=True)
class EndpointMetadata:
    """Authorization metadata attached to an API endpoint.

    Attributes:
        verb: Verb the endpoint performs on every scope it touches.
        scopes: Scopes the endpoint is nested under (``user`` is allowed
            and ignored here; it is checked by authentication).
    """

    verb: APIVerb
    scopes: tuple[PermissionScope, ...]


def parse_uint_param(params: Mapping[str, str], key: str) -> int:
    """Read an unsigned integer parameter.

    Raises:
        BadRequestError: the parameter is missing or not an unsigned integer.
    """
    raw = params.get(key, "")
    if not (raw.isascii() and raw.isdigit()):
        raise BadRequestError(
            f"could not convert url parameter {key} to uint, got {raw}",
            param=key,
        )
    return int(raw)


def build_request_scopes(
    endpoint: EndpointMetadata,
    params: Mapping[str, str],
) -> dict[PermissionScope, RequestAction]:
    """Build the request map for a call to ``endpoint``.

    Args:
        endpoint: The endpoint being called.
        params: Scope parameters taken from the call (``project_id``,
            ``cluster_id``, ``registry_id``, ``namespace``, ``name``).

    Returns:
        Scope → RequestAction for every authorizable scope of the endpoint.

    Raises:
        BadRequestError: a numeric parameter is missing or malformed, or a
            name parameter is missing.
    """
    request: dict[PermissionScope, RequestAction] = {}

    for scope in endpoint.scopes:
        if scope not in SCOPE_PARAMS:
            continue

        key, numeric = SCOPE_PARAMS[scope]
        if numeric:
            resource = NameOrUInt(uint=parse_uint_param(params, key))
        else:
            name = params.get(key, "")
            if not name:
                raise BadRequestError(f"url parameter {key} is required", param=key)
            resource = NameOrUInt(name=name)

        request[scope] = RequestAction(verb=endpoint.verb, resource=resource)

    return request


__all__ = [
    "EndpointMetadata",
    "SCOPE_PARAMS",
    "build_request_scopes",
    "parse_uint_param",
]
