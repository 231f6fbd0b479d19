"""
Provider-identity guard for diff and update.

A resource whose handler reference changed must be replaced, never updated
in place.
"""

from typing import Any, Mapping, Optional

from dynamic_provider.core.capabilities import DiffResult
from dynamic_provider.core.errors import InvariantViolationError
from dynamic_provider.core.properties import PROVIDER_KEY


def providers_match(olds: Mapping[str, Any], news: Mapping[str, Any]) -> bool:
    """Exact equality of the two __provider values (absent counts as None)"""
    return olds.get(PROVIDER_KEY) == news.get(PROVIDER_KEY)


def guard_diff(olds: Mapping[str, Any], news: Mapping[str, Any]) -> Optional[DiffResult]:
    """Return the forced replacement when providers differ, else None"""
    if providers_match(olds, news):
        return None
    return DiffResult(replaces=[PROVIDER_KEY])


def guard_update(olds: Mapping[str, Any], news: Mapping[str, Any]) -> None:
    if not providers_match(olds, news):
        raise InvariantViolationError("changes to provider should require replacement")
