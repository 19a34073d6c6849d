"""Tests for policycore.security module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest
from policycore import (
    APIVerb,
    EnforcementSettings,
    EndpointMetadata,
    InMemoryPolicyStore,
    InMemoryRoleStore,
    PermissionScope,
    PolicyCoreConfig,
    ProjectRole,
    StoredPolicyDocumentLoader,
)
from policycore.security import (
    EnforcementMode,
    PolicyInterceptor,
    _extract_rpc_name,
    _should_skip,
    get_policy_interceptors,
)

P = PermissionScope

_TEST_RPC_MAP = {
    "GetProject": EndpointMetadata(APIVerb.GET, (P.USER, P.PROJECT)),
    "UpdateCluster": EndpointMetadata(APIVerb.UPDATE, (P.USER, P.PROJECT, P.CLUSTER)),
    "GetRelease": EndpointMetadata(APIVerb.GET, (P.USER, P.PROJECT, P.CLUSTER, P.NAMESPACE, P.RELEASE)),
}


def _make_handler_call_details(method: str, metadata: list | None = None):
    """Create a mock HandlerCallDetails."""
    mock = MagicMock()
    mock.method = method
    mock.invocation_metadata = metadata or []
    return mock


def _caller(user_id: str, **params: str) -> list[tuple[str, str]]:
    metadata = [("x-user-id", user_id)]
    metadata.extend((key.replace("_", "-"), value) for key, value in params.items())
    return metadata


async def _continuation(details):
    return "handler"


async def _abort_status(handler) -> grpc.StatusCode:
    """Run a denial handler and return the status it aborts with."""
    context = MagicMock()
    context.abort = AsyncMock()
    await handler.unary_unary(None, context)
    context.abort.assert_awaited_once()
    return context.abort.await_args.args[0]


@pytest.fixture
def loader() -> StoredPolicyDocumentLoader:
    roles = InMemoryRoleStore()
    roles.set_role(1, 7, ProjectRole("admin"))
    roles.set_role(1, 8, ProjectRole("viewer"))
    roles.set_role(1, 9, ProjectRole("custom", policy_uid="broken"))
    policies = InMemoryPolicyStore()
    policies.put_policy(1, "broken", "{")
    return StoredPolicyDocumentLoader(roles, policies)


def _interceptor(loader, mode: EnforcementMode = EnforcementMode.ENFORCE) -> PolicyInterceptor:
    return PolicyInterceptor(_TEST_RPC_MAP, loader, service_name="Test", enforcement=mode)


class TestHelpers:
    """Tests for interceptor helpers."""

    def test_extract_rpc_name(self) -> None:
        assert _extract_rpc_name("/clusters.v1.ClusterService/UpdateCluster") == "UpdateCluster"
        assert _extract_rpc_name("UpdateCluster") == "UpdateCluster"

    def test_should_skip(self) -> None:
        assert _should_skip("/grpc.health.v1.Health/Check")
        assert not _should_skip("/clusters.v1.ClusterService/UpdateCluster")
        assert _should_skip("/ops.v1.Ops/Ping", ("Ping",))


class TestPolicyInterceptor:
    """Tests for PolicyInterceptor."""

    def test_mode_from_env(self, loader, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLICY_ENFORCEMENT", "warn")
        assert PolicyInterceptor(_TEST_RPC_MAP, loader).mode == EnforcementMode.WARN

    @pytest.mark.asyncio
    async def test_off_passes_through(self, loader) -> None:
        """Enforcement off → all RPCs pass through."""
        interceptor = _interceptor(loader, EnforcementMode.OFF)
        details = _make_handler_call_details("/test.Service/UnknownRPC")
        assert await interceptor.intercept_service(_continuation, details) == "handler"

    @pytest.mark.asyncio
    async def test_health_check_skipped(self, loader) -> None:
        """Health check RPCs bypass policy checks even when enforced."""
        details = _make_handler_call_details("/grpc.health.v1.Health/Check")
        assert await _interceptor(loader).intercept_service(_continuation, details) == "handler"

    @pytest.mark.asyncio
    async def test_admin_allowed(self, loader) -> None:
        details = _make_handler_call_details(
            "/test.Service/UpdateCluster",
            _caller("7", project_id="1", cluster_id="3"),
        )
        assert await _interceptor(loader).intercept_service(_continuation, details) == "handler"

    @pytest.mark.asyncio
    async def test_nested_scopes_allowed(self, loader) -> None:
        details = _make_handler_call_details(
            "/test.Service/GetRelease",
            _caller("8", project_id="1", cluster_id="3", namespace="default", name="web"),
        )
        assert await _interceptor(loader).intercept_service(_continuation, details) == "handler"

    @pytest.mark.asyncio
    async def test_viewer_write_denied(self, loader) -> None:
        details = _make_handler_call_details(
            "/test.Service/UpdateCluster",
            _caller("8", project_id="1", cluster_id="3"),
        )
        result = await _interceptor(loader).intercept_service(_continuation, details)
        assert result != "handler"
        assert await _abort_status(result) == grpc.StatusCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_unmapped_rpc_denied(self, loader) -> None:
        """Unknown RPC → PERMISSION_DENIED (fail-closed)."""
        details = _make_handler_call_details("/test.Service/UnknownRPC", _caller("7", project_id="1"))
        result = await _interceptor(loader).intercept_service(_continuation, details)
        assert await _abort_status(result) == grpc.StatusCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("metadata", [[], [("x-user-id", "abc")], [("x-user-id", "-1")]])
    async def test_missing_user_unauthenticated(self, loader, metadata) -> None:
        details = _make_handler_call_details("/test.Service/GetProject", metadata + [("project-id", "1")])
        result = await _interceptor(loader).intercept_service(_continuation, details)
        assert await _abort_status(result) == grpc.StatusCode.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_bad_param_invalid_argument(self, loader) -> None:
        details = _make_handler_call_details(
            "/test.Service/UpdateCluster",
            _caller("7", project_id="1", cluster_id="three"),
        )
        result = await _interceptor(loader).intercept_service(_continuation, details)
        assert await _abort_status(result) == grpc.StatusCode.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_no_role_denied(self, loader) -> None:
        details = _make_handler_call_details("/test.Service/GetProject", _caller("99", project_id="1"))
        result = await _interceptor(loader).intercept_service(_continuation, details)
        assert await _abort_status(result) == grpc.StatusCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_malformed_policy_internal(self, loader) -> None:
        details = _make_handler_call_details("/test.Service/GetProject", _caller("9", project_id="1"))
        result = await _interceptor(loader).intercept_service(_continuation, details)
        assert await _abort_status(result) == grpc.StatusCode.INTERNAL

    @pytest.mark.asyncio
    async def test_warn_mode_logs_but_allows(self, loader, caplog: pytest.LogCaptureFixture) -> None:
        """Warn mode → denial is logged, call proceeds."""
        details = _make_handler_call_details(
            "/test.Service/UpdateCluster",
            _caller("8", project_id="1", cluster_id="3"),
        )
        interceptor = _interceptor(loader, EnforcementMode.WARN)
        with caplog.at_level("WARNING"):
            assert await interceptor.intercept_service(_continuation, details) == "handler"
        assert "WARN_DENIED" in caplog.text

    @pytest.mark.asyncio
    async def test_token_policy_from_metadata(self) -> None:
        policies = InMemoryPolicyStore()
        policies.put_policy(1, "read-only", '[{"scope": "project", "verbs": ["get", "list"]}]')
        roles = InMemoryRoleStore()
        roles.set_role(1, 7, ProjectRole("admin"))
        interceptor = _interceptor(StoredPolicyDocumentLoader(roles, policies))

        metadata = _caller("7", project_id="1", cluster_id="3") + [("x-policy-uid", "read-only")]
        details = _make_handler_call_details("/test.Service/UpdateCluster", metadata)
        result = await interceptor.intercept_service(_continuation, details)
        assert await _abort_status(result) == grpc.StatusCode.PERMISSION_DENIED


class TestGetPolicyInterceptors:
    """Tests for get_policy_interceptors."""

    def test_no_interceptors_when_off(self, loader) -> None:
        config = PolicyCoreConfig(enforcement=EnforcementSettings(mode=EnforcementMode.OFF))
        assert get_policy_interceptors(config, _TEST_RPC_MAP, loader) == []

    def test_interceptor_when_enforced(self, loader) -> None:
        config = PolicyCoreConfig(
            service_name="cluster-api",
            enforcement=EnforcementSettings(mode=EnforcementMode.WARN),
        )
        [interceptor] = get_policy_interceptors(config, _TEST_RPC_MAP, loader)
        assert isinstance(interceptor, PolicyInterceptor)
        assert interceptor.mode == EnforcementMode.WARN
