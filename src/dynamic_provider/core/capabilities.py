"""
Capability Interface

The contract every handler satisfies: check, diff, create, update, delete.

A handler is any object with some of those methods; each may be a coroutine
function or a plain function. ResourceProvider is an optional base class
carrying the defaults for the operations a handler leaves out.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from dynamic_provider.core.errors import (
    InvalidHandlerResultError,
    InvalidPropertiesError,
    UnsupportedOperationError,
)
from dynamic_provider.core.properties import PropertyBag, to_property_bag

CAPABILITIES = ('check', 'diff', 'create', 'update', 'delete')


@dataclass
class CheckFailure:
    property: str
    reason: str


@dataclass
class CheckResult:
    defaults: Optional[PropertyBag] = None
    failures: List[CheckFailure] = field(default_factory=list)


@dataclass
class DiffResult:
    """Non-empty replaces means the resource must be replaced"""
    replaces: List[str] = field(default_factory=list)


@dataclass
class CreateResult:
    id: str
    outs: Optional[PropertyBag] = None


@dataclass
class UpdateResult:
    outs: Optional[PropertyBag] = None


class ResourceProvider:
    """
    Base class for handlers.

    Subclassing is optional; the dispatcher applies the same defaults to
    handlers that simply omit a method.
    """

    async def check(self, news: PropertyBag) -> CheckResult:
        return CheckResult()

    async def diff(self, id: str, olds: PropertyBag, news: PropertyBag) -> DiffResult:
        return DiffResult()

    async def create(self, news: PropertyBag) -> CreateResult:
        raise UnsupportedOperationError("Handler does not implement create")

    async def update(self, id: str, olds: PropertyBag, news: PropertyBag) -> UpdateResult:
        raise UnsupportedOperationError("Handler does not implement update")

    async def delete(self, id: str, props: PropertyBag) -> None:
        raise UnsupportedOperationError("Handler does not implement delete")


# Defaults for handlers that don't subclass ResourceProvider
_defaults = ResourceProvider()


async def call_capability(handler: Any, name: str, *args: Any) -> Any:
    """
    Invoke a capability on a handler, falling back to the default.

    Args:
        handler: The resolved handler object
        name: Capability name (check, diff, create, update, delete)
        *args: Arguments for the capability

    Returns:
        Whatever the capability returns, awaited if awaitable
    """
    if name not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {name}")

    method = getattr(handler, name, None)
    if method is None:
        method = getattr(_defaults, name)
    elif not callable(method):
        raise UnsupportedOperationError(
            f"Handler attribute '{name}' is not callable. "
            f"Available operations: {get_available_capabilities(handler)}"
        )

    if inspect.iscoroutinefunction(method):
        result = await method(*args)
    else:
        # Plain functions run in a worker thread; handler code never blocks the loop
        result = await asyncio.to_thread(method, *args)

    if inspect.isawaitable(result):
        result = await result
    return result


def get_available_capabilities(handler: Any) -> List[str]:
    """List the capabilities a handler defines itself"""
    return [name for name in CAPABILITIES if callable(getattr(handler, name, None))]


# Result coercion: handlers may return dataclasses or plain mappings


def coerce_check_result(value: Any) -> CheckResult:
    if value is None:
        return CheckResult()
    if isinstance(value, CheckResult):
        defaults, failures = value.defaults, value.failures
    elif isinstance(value, Mapping):
        defaults, failures = value.get('defaults'), value.get('failures') or []
    else:
        raise InvalidHandlerResultError(
            f"check must return a CheckResult or mapping, got {type(value).__name__}"
        )

    return CheckResult(
        defaults=_outs(defaults, 'check defaults'),
        failures=[_coerce_failure(f) for f in failures],
    )


def _coerce_failure(value: Any) -> CheckFailure:
    if isinstance(value, CheckFailure):
        prop, reason = value.property, value.reason
    elif isinstance(value, Mapping):
        prop, reason = value.get('property'), value.get('reason')
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        prop, reason = value
    else:
        raise InvalidHandlerResultError(f"Malformed check failure: {value!r}")

    if not isinstance(prop, str) or not isinstance(reason, str):
        raise InvalidHandlerResultError(
            f"Check failure property and reason must be strings: {value!r}"
        )
    return CheckFailure(property=prop, reason=reason)


def coerce_diff_result(value: Any) -> DiffResult:
    if value is None:
        return DiffResult()
    if isinstance(value, DiffResult):
        replaces = value.replaces
    elif isinstance(value, Mapping):
        replaces = value.get('replaces') or []
    else:
        raise InvalidHandlerResultError(
            f"diff must return a DiffResult or mapping, got {type(value).__name__}"
        )

    if not isinstance(replaces, (list, tuple)) or not all(isinstance(p, str) for p in replaces):
        raise InvalidHandlerResultError(f"diff replaces must be a list of strings: {replaces!r}")
    return DiffResult(replaces=list(replaces))


def coerce_create_result(value: Any) -> CreateResult:
    if isinstance(value, CreateResult):
        id, outs = value.id, value.outs
    elif isinstance(value, Mapping):
        id, outs = value.get('id'), value.get('outs')
    else:
        raise InvalidHandlerResultError(
            f"create must return a CreateResult or mapping, got {type(value).__name__}"
        )

    if not isinstance(id, str) or not id:
        raise InvalidHandlerResultError(f"create must return a non-empty string id, got {id!r}")
    return CreateResult(id=id, outs=_outs(outs, 'create outs'))


def coerce_update_result(value: Any) -> UpdateResult:
    if value is None:
        return UpdateResult()
    if isinstance(value, UpdateResult):
        outs = value.outs
    elif isinstance(value, Mapping):
        outs = value.get('outs')
    else:
        raise InvalidHandlerResultError(
            f"update must return an UpdateResult or mapping, got {type(value).__name__}"
        )
    return UpdateResult(outs=_outs(outs, 'update outs'))


def _outs(value: Any, what: str) -> Optional[PropertyBag]:
    if value is None:
        return None
    try:
        return to_property_bag(value)
    except InvalidPropertiesError as e:
        raise InvalidHandlerResultError(f"Invalid {what}: {e}") from e
