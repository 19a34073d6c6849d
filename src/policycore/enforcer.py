"""Request authorization: resolve scopes, load policies, decide.

``PolicyEnforcer`` composes the request scope resolver, a policy loader
and ``has_access`` into the check an API boundary runs before a handler.
Transport adapters (see ``policycore.security``) translate its errors
into status codes.
"""

from __future__ import annotations

from typing import Mapping, Optional

from .exceptions import ForbiddenError
from .loaders import PolicyDocumentLoader, PolicyLoaderOpts
from .logging import get_policy_logger
from .permissions.access import has_access
from .permissions.constants import PermissionScope
from .permissions.documents import RequestAction
from .permissions.request import EndpointMetadata, build_request_scopes, parse_uint_param


class PolicyEnforcer:
    """Authorizes endpoint calls against the caller's policy.

    Args:
        loader: Source of policy documents for a principal.

    Usage::

        enforcer = PolicyEnforcer(BasicPolicyDocumentLoader(role_store))
        scopes = enforcer.authorize(
            user_id=7,
            endpoint=EndpointMetadata(APIVerb.UPDATE, (PermissionScope.PROJECT, PermissionScope.CLUSTER)),
            params={"project_id": "1", "cluster_id": "3"},
        )
    """

    def __init__(self, loader: PolicyDocumentLoader) -> None:
        self._loader = loader

    @property
    def loader(self) -> PolicyDocumentLoader:
        return self._loader

    def authorize(
        self,
        user_id: int,
        endpoint: EndpointMetadata,
        params: Mapping[str, str],
        *,
        policy_uid: Optional[str] = None,
    ) -> dict[PermissionScope, RequestAction]:
        """Authorize a call, returning the resolved request scopes.

        Raises:
            BadRequestError: scope parameters are missing or malformed.
            ForbiddenError: no role in the project, or the policy denies.
            InternalError: policies could not be loaded.
        """
        request = build_request_scopes(endpoint, params)
        project_id = parse_uint_param(params, "project_id")

        log = get_policy_logger(__name__, user_id=user_id, project_id=project_id)

        policy = self._loader.load_policy_documents(
            PolicyLoaderOpts(user_id=user_id, project_id=project_id, policy_uid=policy_uid)
        )

        if not has_access(policy, request):
            log.warning(
                "Policy denied %s on %s",
                endpoint.verb.value,
                ",".join(scope.value for scope in request),
            )
            raise ForbiddenError(
                "user does not have access to this resource",
                user_id=user_id,
                project_id=project_id,
            )

        log.debug("Policy admitted %s", endpoint.verb.value)
        return request


__all__ = [
    "PolicyEnforcer",
]
