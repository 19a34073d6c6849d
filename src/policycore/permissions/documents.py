"""Policy document models and their JSON codec.

Provides:
- ``NameOrUInt``: resource identifier (name or numeric id).
- ``PolicyDocument``: recursive grant of verbs at a scope.
- ``RequestAction``: the verb and resource requested at one scope.
- ``parse_policy()`` / ``dump_policy()``: JSON form used for stored
  custom roles and API-token policies.

All models are frozen and ``children`` is a read-only mapping, so the
role templates can be shared between callers. A document's ``children``
only lists the scopes the author wrote down: a missing key means
"inherit", while a present child with no verbs means "grant nothing here".
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)

from ..exceptions import InvalidPolicyError
from .constants import VERB_ORDER, APIVerb, PermissionScope

logger = logging.getLogger(__name__)

_EMPTY_FIELDS: dict[str, Any] = {"resources": (), "verbs": frozenset(), "children": {}}


class NameOrUInt(BaseModel):
    """Resource identifier: either a name or an unsigned numeric id.

    The unused variant keeps its zero value (``""`` / ``0``). Both may be
    unset, e.g. a ``create`` request names no specific resource.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    uint: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _single_variant(self) -> NameOrUInt:
        if self.name and self.uint:
            raise ValueError("resource identifier must set either name or uint, not both")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.uint

    def __str__(self) -> str:
        return self.name if self.name else str(self.uint)


class PolicyDocument(BaseModel):
    """A grant of ``verbs`` at ``scope``, optionally narrowed to ``resources``.

    Attributes:
        scope: Scope this document governs.
        resources: Resources the grant is narrowed to. Empty means any
            resource at this scope.
        verbs: Verbs granted at this scope.
        children: Documents for scopes nested beneath this one, at most one
            per scope.
    """

    model_config = ConfigDict(frozen=True)

    scope: PermissionScope
    resources: tuple[NameOrUInt, ...] = ()
    verbs: frozenset[APIVerb] = frozenset()
    children: Mapping[PermissionScope, PolicyDocument] = Field(default_factory=dict, validate_default=True)

    @field_validator("resources", "verbs", "children", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any, info: ValidationInfo) -> Any:
        # Stored policies may carry explicit nulls for empty collections.
        if v is None:
            return _EMPTY_FIELDS[info.field_name]
        return v

    @field_validator("children")
    @classmethod
    def _freeze_children(cls, v: Mapping[PermissionScope, PolicyDocument]) -> Mapping[PermissionScope, PolicyDocument]:
        return MappingProxyType(dict(v))

    @field_serializer("verbs")
    def _serialize_verbs(self, verbs: frozenset[APIVerb]) -> list[str]:
        return [verb.value for verb in VERB_ORDER if verb in verbs]

    @field_serializer("children")
    def _serialize_children(
        self, children: Mapping[PermissionScope, PolicyDocument], info: SerializationInfo
    ) -> dict[str, Any]:
        return {scope.value: child.model_dump(mode=info.mode) for scope, child in children.items()}


class RequestAction(BaseModel):
    """Verb and resource requested at a single scope."""

    model_config = ConfigDict(frozen=True)

    verb: APIVerb
    resource: NameOrUInt = Field(default_factory=NameOrUInt)


# A request names each scope at most once.
RequestScopes = Mapping[PermissionScope, RequestAction]

_POLICY_ADAPTER: TypeAdapter[list[PolicyDocument]] = TypeAdapter(list[PolicyDocument])
_RAW_POLICY_ADAPTER: TypeAdapter[list[dict[str, Any]]] = TypeAdapter(list[dict[str, Any]])


def parse_policy(raw: str | bytes) -> list[PolicyDocument]:
    """Decode a stored policy (a JSON list of documents).

    Each document is decoded on its own. A document naming an unknown
    scope or verb, or a resource identifier with both variants set, is
    logged and dropped while the rest of the policy still applies.

    Raises:
        InvalidPolicyError: the payload is not JSON, or not a list of
            objects.
    """
    try:
        items = _RAW_POLICY_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise InvalidPolicyError(
            f"Invalid policy document: {e.error_count()} validation error(s)",
            errors=e.errors(include_url=False),
        ) from e

    policy = []
    for index, item in enumerate(items):
        try:
            policy.append(PolicyDocument.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Dropping policy document %d: %d validation error(s): %s",
                index,
                e.error_count(),
                e.errors(include_url=False, include_input=False),
            )
    return policy


def dump_policy(policy: Sequence[PolicyDocument]) -> str:
    """Encode a policy as JSON, the inverse of :func:`parse_policy`."""
    return _POLICY_ADAPTER.dump_json(list(policy)).decode()


__all__ = [
    "NameOrUInt",
    "PolicyDocument",
    "RequestAction",
    "RequestScopes",
    "dump_policy",
    "parse_policy",
]
