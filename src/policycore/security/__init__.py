"""Transport integration for policy enforcement.

Usage (in any gRPC service)::

    from policycore.security import get_policy_interceptors

    server = grpc.aio.server(
        interceptors=get_policy_interceptors(config, RPC_ENDPOINTS, loader),
    )

Configuration (env vars)::

    POLICY_ENFORCEMENT=enforce   # off | warn | enforce (default: enforce)
"""

from __future__ import annotations

from typing import Mapping

import grpc

from ..config import EnforcementMode, PolicyCoreConfig
from ..loaders import PolicyDocumentLoader
from ..permissions.request import EndpointMetadata
from .interceptors import (
    METADATA_PARAMS,
    POLICY_UID_KEY,
    USER_ID_KEY,
    PolicyInterceptor,
    _extract_rpc_name,
    _should_skip,
)


def get_policy_interceptors(
    config: PolicyCoreConfig,
    rpc_endpoint_map: Mapping[str, EndpointMetadata],
    loader: PolicyDocumentLoader,
) -> list[grpc.aio.ServerInterceptor]:
    """Get gRPC server interceptors for policy enforcement.

    Returns an empty list when enforcement is off.

    Args:
        config: Service configuration (enforcement mode, skip list, name).
        rpc_endpoint_map: RPC name → endpoint metadata.
        loader: Policy document loader.
    """
    mode = config.enforcement.mode
    if mode == EnforcementMode.OFF:
        return []

    return [
        PolicyInterceptor(
            rpc_endpoint_map,
            loader,
            service_name=config.service_name or "Service",
            enforcement=mode,
            skip_prefixes=config.enforcement.skip_methods,
        )
    ]


__all__ = [
    "EnforcementMode",
    "METADATA_PARAMS",
    "POLICY_UID_KEY",
    "PolicyInterceptor",
    "USER_ID_KEY",
    "_extract_rpc_name",
    "_should_skip",
    "get_policy_interceptors",
]
