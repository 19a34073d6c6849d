"""Redis-backed role and policy stores.

Key layout (prefix defaults to ``policycore``)::

    <prefix>:projects:<project_id>:roles:<user_id>    → {"kind": ..., "policy_uid": ...}
    <prefix>:projects:<project_id>:policies:<uid>     → policy JSON (list of documents)

Values are JSON strings; clients are created with ``decode_responses=True``.
Redis failures surface as ``StorageError`` so loaders pass them through
as 500s instead of treating them as a missing role.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import redis

from .exceptions import StorageError
from .loaders import ProjectRole
from .permissions.documents import PolicyDocument, dump_policy

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "policycore"


def _project_key(prefix: str, project_id: int) -> str:
    return f"{prefix}:projects:{project_id}"


class RedisRoleStore:
    """RoleStore reading project roles from Redis.

    Args:
        client: Sync Redis client with ``decode_responses=True``.
        prefix: Key prefix shared by all policycore keys.
    """

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = DEFAULT_PREFIX) -> RedisRoleStore:
        return cls(redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, project_id: int, user_id: int) -> str:
        return f"{_project_key(self._prefix, project_id)}:roles:{user_id}"

    def get_role(self, project_id: int, user_id: int) -> Optional[ProjectRole]:
        key = self._key(project_id, user_id)
        try:
            raw = self._client.get(key)
        except redis.RedisError as e:
            logger.warning("Role lookup failed for %s: %s", key, e)
            raise StorageError(f"could not read project role: {e}", key=key) from e

        if raw is None:
            return None

        try:
            data = json.loads(raw)
            return ProjectRole(kind=data["kind"], policy_uid=data.get("policy_uid") or None)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Role record %s is malformed: %s", key, e)
            raise StorageError(f"role record {key} is malformed", key=key) from e

    def set_role(self, project_id: int, user_id: int, role: ProjectRole) -> None:
        value = json.dumps({"kind": role.kind, "policy_uid": role.policy_uid})
        try:
            self._client.set(self._key(project_id, user_id), value)
        except redis.RedisError as e:
            raise StorageError(f"could not write project role: {e}") from e

    def remove_role(self, project_id: int, user_id: int) -> None:
        try:
            self._client.delete(self._key(project_id, user_id))
        except redis.RedisError as e:
            raise StorageError(f"could not remove project role: {e}") from e


class RedisPolicyStore:
    """PolicyStore reading custom-role and API-token policies from Redis.

    Policies are stored as the JSON produced by ``dump_policy`` and decoded
    by the loader, so a bad record fails at load time with a clear error.
    """

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = DEFAULT_PREFIX) -> RedisPolicyStore:
        return cls(redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, project_id: int, uid: str) -> str:
        return f"{_project_key(self._prefix, project_id)}:policies:{uid}"

    def get_policy(self, project_id: int, uid: str) -> Optional[str | bytes]:
        key = self._key(project_id, uid)
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            logger.warning("Policy lookup failed for %s: %s", key, e)
            raise StorageError(f"could not read policy: {e}", key=key) from e

    def put_policy(
        self,
        project_id: int,
        uid: str,
        policy: str | bytes | Sequence[PolicyDocument],
    ) -> None:
        """Store a policy given as JSON or as documents."""
        value: Any = policy if isinstance(policy, (str, bytes)) else dump_policy(policy)
        try:
            self._client.set(self._key(project_id, uid), value)
        except redis.RedisError as e:
            raise StorageError(f"could not write policy: {e}") from e

        logger.info("Stored policy %s for project %s", uid, project_id)

    def delete_policy(self, project_id: int, uid: str) -> None:
        try:
            self._client.delete(self._key(project_id, uid))
        except redis.RedisError as e:
            raise StorageError(f"could not delete policy: {e}") from e


__all__ = [
    "DEFAULT_PREFIX",
    "RedisPolicyStore",
    "RedisRoleStore",
]
