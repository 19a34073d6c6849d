"""gRPC interceptor that enforces scope policies on incoming calls.

Provides:
- ``PolicyInterceptor``: maps each RPC to endpoint metadata and runs the
  policy enforcer before the handler.
- ``METADATA_PARAMS``: gRPC metadata key → scope parameter name.
- ``_extract_rpc_name``, ``_should_skip``: helper utilities.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

import grpc

from ..config import EnforcementMode
from ..enforcer import PolicyEnforcer
from ..exceptions import PolicyCoreError, get_grpc_status_code
from ..loaders import PolicyDocumentLoader
from ..permissions.request import EndpointMetadata

logger = logging.getLogger(__name__)

# Method prefixes that bypass policy checks
_SKIP_PREFIXES = (
    "grpc.health.v1",
    "grpc.reflection.v1",
)

# Metadata carrying the authenticated principal and an optional token policy
USER_ID_KEY = "x-user-id"
POLICY_UID_KEY = "x-policy-uid"

METADATA_PARAMS: Mapping[str, str] = {
    "project-id": "project_id",
    "cluster-id": "cluster_id",
    "registry-id": "registry_id",
    "namespace": "namespace",
    "name": "name",
}


# ── Helpers ──────────────────────────────────────────────────────


def _extract_rpc_name(full_method: str) -> str:
    """Extract RPC name from fully-qualified method string.

    ``/clusters.v1.ClusterService/UpdateCluster`` → ``UpdateCluster``
    """
    return full_method.rsplit("/", 1)[-1] if "/" in full_method else full_method


def _should_skip(method: str, prefixes: Sequence[str] = _SKIP_PREFIXES) -> bool:
    """Check if this method should skip policy checks."""
    return any(prefix in method for prefix in prefixes)


def _params_from_metadata(metadata: Mapping[str, str]) -> dict[str, str]:
    return {param: metadata[key] for key, param in METADATA_PARAMS.items() if key in metadata}


# ── Interceptor ─────────────────────────────────────────────────


class PolicyInterceptor(grpc.aio.ServerInterceptor):
    """gRPC server interceptor for scope-policy enforcement.

    Sits before all handlers and:
    1. Logs the caller identity (always, even when enforcement is off)
    2. Maps the RPC to its ``EndpointMetadata`` via ``rpc_endpoint_map``
    3. Reads the principal (``x-user-id``) and scope parameters from metadata
    4. Runs ``PolicyEnforcer.authorize``
    5. Aborts with the status matching the failure

    Unmapped RPCs are **denied** (fail-closed).

    Args:
        rpc_endpoint_map: Mapping of RPC name → endpoint metadata.
        loader: Policy document loader.
        service_name: Human-readable service name for log messages.
        enforcement: Three-state mode (off / warn / enforce).
            Defaults to ``POLICY_ENFORCEMENT`` env var (``enforce`` if unset).
        skip_prefixes: Method prefixes that bypass policy checks.
    """

    def __init__(
        self,
        rpc_endpoint_map: Mapping[str, EndpointMetadata],
        loader: PolicyDocumentLoader,
        *,
        service_name: str = "Service",
        enforcement: EnforcementMode | None = None,
        skip_prefixes: Sequence[str] = _SKIP_PREFIXES,
    ) -> None:
        self._rpc_map = rpc_endpoint_map
        self._enforcer = PolicyEnforcer(loader)
        self._service_name = service_name
        self._mode = enforcement if enforcement is not None else EnforcementMode.from_env()
        self._skip_prefixes = tuple(skip_prefixes)

        if self._mode != EnforcementMode.OFF:
            logger.info(
                "%s policy interceptor mode: %s",
                self._service_name,
                self._mode.value,
            )

    @property
    def mode(self) -> EnforcementMode:
        return self._mode

    async def intercept_service(
        self,
        continuation: Any,
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        """Intercept incoming gRPC calls for policy enforcement."""
        method = handler_call_details.method or ""

        if _should_skip(method, self._skip_prefixes):
            return await continuation(handler_call_details)

        rpc_name = _extract_rpc_name(method)
        metadata = dict(handler_call_details.invocation_metadata or [])
        raw_user_id = str(metadata.get(USER_ID_KEY, "")).strip()

        logger.info(
            "%s RPC %s | user=%s",
            self._service_name,
            rpc_name,
            raw_user_id or "anonymous",
        )

        if self._mode == EnforcementMode.OFF:
            return await continuation(handler_call_details)

        deny_reason: str | None = None
        deny_code: grpc.StatusCode = grpc.StatusCode.PERMISSION_DENIED

        endpoint = self._rpc_map.get(rpc_name)
        if endpoint is None:
            deny_reason = "RPC not mapped to endpoint metadata"
        elif not (raw_user_id.isascii() and raw_user_id.isdigit()):
            deny_reason = "missing or invalid user id"
            deny_code = grpc.StatusCode.UNAUTHENTICATED
        else:
            try:
                await asyncio.to_thread(
                    self._enforcer.authorize,
                    int(raw_user_id),
                    endpoint,
                    _params_from_metadata(metadata),
                    policy_uid=metadata.get(POLICY_UID_KEY) or None,
                )
            except PolicyCoreError as e:
                deny_reason = f"[{e.code}] {e.message}"
                deny_code = get_grpc_status_code(e)

        if deny_reason:
            if self._mode == EnforcementMode.WARN:
                logger.warning(
                    "%s WARN_DENIED '%s': %s (would block in enforce mode)",
                    self._service_name,
                    rpc_name,
                    deny_reason,
                )
                return await continuation(handler_call_details)

            logger.warning(
                "%s DENIED '%s': %s",
                self._service_name,
                rpc_name,
                deny_reason,
            )

            _deny_msg = f"{self._service_name}: {rpc_name} denied: {deny_reason}"
            _deny_status = deny_code

            async def _denied(request, context):
                await context.abort(_deny_status, _deny_msg)

            return grpc.unary_unary_rpc_method_handler(_denied)

        logger.debug(
            "%s ALLOWED '%s' for user %s",
            self._service_name,
            rpc_name,
            raw_user_id,
        )

        return await continuation(handler_call_details)


__all__ = [
    "METADATA_PARAMS",
    "POLICY_UID_KEY",
    "PolicyInterceptor",
    "USER_ID_KEY",
    "_extract_rpc_name",
    "_should_skip",
]
