"""Policy document loaders.

A loader answers "which policy documents apply to this principal in this
project?". The decision engine never looks roles up itself; it is handed
whatever a loader returns.

Provides:
- ``PolicyDocumentLoader``: the loader capability (one method).
- ``BasicPolicyDocumentLoader``: built-in role kinds only.
- ``StoredPolicyDocumentLoader``: also resolves custom roles and
  API-token policies from a policy store.
- ``RoleStore`` / ``PolicyStore``: storage capabilities, with in-memory
  implementations for tests and local development (Redis ones live in
  ``policycore.stores``).
- ``create_policy_loader()``: pick a loader from configuration.

Loaders raise ``ForbiddenError`` (403) when the principal has no usable
role and ``InternalError`` (500) when storage or decoding fails.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from .config import LoaderBackend, PolicyCoreConfig
from .exceptions import (
    ConfigurationError,
    ForbiddenError,
    InternalError,
    InvalidPolicyError,
    RequestError,
)
from .permissions.documents import PolicyDocument, parse_policy
from .permissions.roles import RoleKind, policy_for_role

logger = logging.getLogger(__name__)


# ── Data ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PolicyLoaderOpts:
    """Who is asking, and in which project.

    Attributes:
        user_id: Principal identifier.
        project_id: Project the request is scoped to.
        policy_uid: Policy attached to the credential itself (API tokens).
            When set, it takes precedence over the principal's role.
    """

    user_id: int
    project_id: int
    policy_uid: Optional[str] = None


@dataclass(frozen=True)
class ProjectRole:
    """A principal's role in a project.

    ``policy_uid`` points at the stored policy of a ``custom`` role.
    """

    kind: str
    policy_uid: Optional[str] = None


# ── Capabilities ─────────────────────────────────────────────────


@runtime_checkable
class PolicyDocumentLoader(Protocol):
    """Loads the policy documents that apply to a principal."""

    def load_policy_documents(self, opts: PolicyLoaderOpts) -> list[PolicyDocument]: ...


@runtime_checkable
class RoleStore(Protocol):
    """Reads project roles. Returns None when the principal has no role."""

    def get_role(self, project_id: int, user_id: int) -> Optional[ProjectRole]: ...


@runtime_checkable
class PolicyStore(Protocol):
    """Reads stored policies (JSON). Returns None when the uid is unknown."""

    def get_policy(self, project_id: int, uid: str) -> Optional[str | bytes]: ...


# ── In-memory stores ─────────────────────────────────────────────


class InMemoryRoleStore:
    """Thread-safe dict-backed RoleStore."""

    def __init__(self) -> None:
        self._roles: dict[tuple[int, int], ProjectRole] = {}
        self._lock = threading.Lock()

    def set_role(self, project_id: int, user_id: int, role: ProjectRole) -> None:
        with self._lock:
            self._roles[(project_id, user_id)] = role

    def remove_role(self, project_id: int, user_id: int) -> None:
        with self._lock:
            self._roles.pop((project_id, user_id), None)

    def get_role(self, project_id: int, user_id: int) -> Optional[ProjectRole]:
        with self._lock:
            return self._roles.get((project_id, user_id))


class InMemoryPolicyStore:
    """Thread-safe dict-backed PolicyStore."""

    def __init__(self) -> None:
        self._policies: dict[tuple[int, str], str | bytes] = {}
        self._lock = threading.Lock()

    def put_policy(self, project_id: int, uid: str, raw: str | bytes) -> None:
        with self._lock:
            self._policies[(project_id, uid)] = raw

    def get_policy(self, project_id: int, uid: str) -> Optional[str | bytes]:
        with self._lock:
            return self._policies.get((project_id, uid))


# ── Loaders ──────────────────────────────────────────────────────


def _read_role(role_store: RoleStore, opts: PolicyLoaderOpts) -> ProjectRole:
    try:
        role = role_store.get_role(opts.project_id, opts.user_id)
    except RequestError:
        raise
    except Exception as e:
        logger.exception("Role lookup failed for user %s in project %s", opts.user_id, opts.project_id)
        raise InternalError(f"could not read project role: {e}") from e

    if role is None:
        raise ForbiddenError(
            f"user {opts.user_id} does not have a role in project {opts.project_id}",
            user_id=opts.user_id,
            project_id=opts.project_id,
        )
    return role


class BasicPolicyDocumentLoader:
    """Maps the principal's role kind to a built-in policy template.

    ``custom`` roles and unknown kinds are forbidden: this loader has no
    access to stored policies.
    """

    def __init__(self, role_store: RoleStore) -> None:
        self._role_store = role_store

    def load_policy_documents(self, opts: PolicyLoaderOpts) -> list[PolicyDocument]:
        role = _read_role(self._role_store, opts)

        policy = policy_for_role(role.kind)
        if policy is None:
            raise ForbiddenError(
                f"role kind {role.kind!r} is not supported by this loader",
                user_id=opts.user_id,
                project_id=opts.project_id,
            )
        return policy


class StoredPolicyDocumentLoader:
    """Resolves built-in roles, custom roles and API-token policies.

    Resolution order:
    1. ``opts.policy_uid`` (policy bound to the credential), if set.
    2. The principal's role: built-in kinds use their template, ``custom``
       roles load the stored policy the role points at.
    """

    def __init__(self, role_store: RoleStore, policy_store: PolicyStore) -> None:
        self._role_store = role_store
        self._policy_store = policy_store

    def load_policy_documents(self, opts: PolicyLoaderOpts) -> list[PolicyDocument]:
        if opts.policy_uid:
            return self._load_stored(opts, opts.policy_uid)

        role = _read_role(self._role_store, opts)

        if role.kind == RoleKind.CUSTOM.value:
            if not role.policy_uid:
                raise ForbiddenError(
                    "custom role has no policy attached",
                    user_id=opts.user_id,
                    project_id=opts.project_id,
                )
            return self._load_stored(opts, role.policy_uid)

        policy = policy_for_role(role.kind)
        if policy is None:
            raise ForbiddenError(
                f"unknown role kind {role.kind!r}",
                user_id=opts.user_id,
                project_id=opts.project_id,
            )
        return policy

    def _load_stored(self, opts: PolicyLoaderOpts, uid: str) -> list[PolicyDocument]:
        try:
            raw = self._policy_store.get_policy(opts.project_id, uid)
        except RequestError:
            raise
        except Exception as e:
            logger.exception("Policy lookup failed for policy %s in project %s", uid, opts.project_id)
            raise InternalError(f"could not read policy: {e}") from e

        if raw is None:
            raise ForbiddenError(
                f"policy {uid} not found in project {opts.project_id}",
                policy_uid=uid,
                project_id=opts.project_id,
            )

        try:
            return parse_policy(raw)
        except InvalidPolicyError as e:
            logger.error("Stored policy %s in project %s is malformed: %s", uid, opts.project_id, e.message)
            raise InternalError(f"stored policy {uid} is malformed") from e


def create_policy_loader(
    config: PolicyCoreConfig,
    role_store: RoleStore,
    policy_store: Optional[PolicyStore] = None,
) -> PolicyDocumentLoader:
    """Create the loader selected by ``config.loader_backend``.

    The stored backend falls back to a ``RedisPolicyStore`` on
    ``config.redis_url`` when no policy store is passed.

    Raises:
        ConfigurationError: the stored backend is selected without a policy
            store or a Redis URL.
    """
    if config.loader_backend == LoaderBackend.STORED:
        if policy_store is None:
            if not config.redis_url:
                raise ConfigurationError("POLICY_LOADER=stored requires a policy store or REDIS_URL")
            from .stores import RedisPolicyStore

            policy_store = RedisPolicyStore.from_url(config.redis_url)
        return StoredPolicyDocumentLoader(role_store, policy_store)

    return BasicPolicyDocumentLoader(role_store)


__all__ = [
    "BasicPolicyDocumentLoader",
    "InMemoryPolicyStore",
    "InMemoryRoleStore",
    "PolicyDocumentLoader",
    "PolicyLoaderOpts",
    "PolicyStore",
    "ProjectRole",
    "RoleStore",
    "StoredPolicyDocumentLoader",
    "create_policy_loader",
]
