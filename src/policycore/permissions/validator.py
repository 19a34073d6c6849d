"""Policy document validation and population.

Walks a policy document alongside ``SCOPE_HIERARCHY`` to check that it is
structurally valid and to work out, for each scope named in a request,
the *effective* document that governs it.

Rules:
- A scope the author left out is governed by a synthesized document that
  carries the parent's verbs, no resources and no children.
- Verbs flow from a document into the children it leaves out. The one
  exception is the root default: when no project document is present,
  the verbs seeded at ``project`` stay at ``project`` and child scopes
  start with nothing. Authority below the root always traces back to a
  document someone wrote.
- A document is invalid when its scope differs from the scope it is found
  at, or when it has a child the hierarchy does not allow there.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from .constants import APIVerb, PermissionScope
from .documents import PolicyDocument, RequestScopes
from .hierarchy import ROOT_SCOPE, allowed_children

logger = logging.getLogger(__name__)


class WalkResult(NamedTuple):
    """Outcome of :func:`walk`.

    ``matches`` maps each requested scope to its effective document. It is
    empty whenever ``ok`` is False.
    """

    ok: bool
    matches: dict[PermissionScope, PolicyDocument]


def walk(
    doc: PolicyDocument | None,
    expected_scope: PermissionScope,
    parent_verbs: frozenset[APIVerb],
    request: RequestScopes,
) -> WalkResult:
    """Validate ``doc`` at ``expected_scope`` and collect requested scopes.

    Args:
        doc: Document found at this scope, or None if the parent has no
            entry for it.
        expected_scope: Scope the document is evaluated at.
        parent_verbs: Verbs inherited when ``doc`` is None.
        request: Full scope → action mapping of the request.

    Returns:
        WalkResult with ``ok`` False on the first structural violation.
    """
    if doc is None:
        effective = PolicyDocument(scope=expected_scope, verbs=parent_verbs)
    else:
        if doc.scope != expected_scope:
            logger.debug(
                "Policy document scope %s found where %s was expected",
                doc.scope.value,
                expected_scope.value,
            )
            return WalkResult(False, {})

        children = allowed_children(expected_scope)
        for child_scope in doc.children:
            if child_scope not in children:
                logger.debug(
                    "Policy document nests %s under %s, which the hierarchy does not allow",
                    child_scope.value,
                    expected_scope.value,
                )
                return WalkResult(False, {})

        effective = doc

    if doc is None and expected_scope == ROOT_SCOPE:
        child_verbs: frozenset[APIVerb] = frozenset()
    else:
        child_verbs = effective.verbs

    matches: dict[PermissionScope, PolicyDocument] = {}
    for child_scope in allowed_children(expected_scope):
        result = walk(effective.children.get(child_scope), child_scope, child_verbs, request)
        if not result.ok:
            return WalkResult(False, {})
        matches.update(result.matches)

    if expected_scope in request:
        matches[expected_scope] = effective

    return WalkResult(True, matches)


__all__ = [
    "WalkResult",
    "walk",
]
