"""Access decision for a request against a principal's policy.

``has_access`` is the only entrypoint callers need. It is a pure function
of its inputs: it performs no I/O, holds no state and never raises.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .constants import APIVerb, read_write_verb_group
from .documents import NameOrUInt, PolicyDocument, RequestAction, RequestScopes
from .hierarchy import ROOT_SCOPE
from .validator import walk

logger = logging.getLogger(__name__)


def has_access(policy: Sequence[PolicyDocument], request: RequestScopes) -> bool:
    """Check whether any single document in ``policy`` admits ``request``.

    Each document is validated and populated against the scope hierarchy.
    Structurally invalid documents are skipped; they never deny on behalf
    of the other documents. A document admits the request when, at every
    requested scope, its effective document passes both checks:

    1. Resource: if the effective document lists resources and the verb is
       not ``list``, the requested resource must be one of them.
    2. Verb: the requested verb must be granted.

    Args:
        policy: Policy documents authored for the principal, in order.
        request: Scope → requested action.

    Returns:
        True if at least one document admits every requested scope.

    Example::

        has_access(ADMIN_POLICY, {
            PermissionScope.PROJECT: RequestAction(verb=APIVerb.GET, resource=NameOrUInt(uint=1)),
        })  # True
    """
    for index, doc in enumerate(policy):
        ok, matches = walk(doc, ROOT_SCOPE, read_write_verb_group(), request)
        if not ok:
            logger.debug("Skipping structurally invalid policy document #%d", index)
            continue

        if all(_is_match(request[scope], effective) for scope, effective in matches.items()):
            return True

    return False


def _is_match(action: RequestAction, effective: PolicyDocument) -> bool:
    # list is collection-scoped, so specific resources cannot narrow it
    if effective.resources and action.verb != APIVerb.LIST:
        if not _is_resource_match(action.resource, effective.resources):
            return False

    return action.verb in effective.verbs


def _is_resource_match(resource: NameOrUInt, allowed: Sequence[NameOrUInt]) -> bool:
    return any(resource == candidate for candidate in allowed)


__all__ = [
    "has_access",
]
