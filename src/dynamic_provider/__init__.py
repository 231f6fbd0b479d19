"""
Dynamic Provider: a resource provider whose handlers travel with the resource.

Each resource's property bag carries, under the reserved `__provider` key,
the Python source of the handler that governs it. The provider endpoint
receives CRUD calls from an orchestration engine, loads that source fresh on
every call and dispatches to it.

Example handler source:
    >>> SOURCE = '''
    ... class Counter:
    ...     async def create(self, news):
    ...         return {'id': news['name'], 'outs': {'count': 0}}
    ...
    ... def handler():
    ...     return Counter()
    ... '''
    >>>
    >>> props = {'__provider': SOURCE, 'name': 'c1'}
"""

__version__ = "0.1.0"
__license__ = "MIT"

from dynamic_provider.core.capabilities import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    ResourceProvider,
    UpdateResult,
)
from dynamic_provider.core.properties import PROVIDER_KEY

__all__ = [
    "__version__",
    "PROVIDER_KEY",
    "ResourceProvider",
    "CheckFailure",
    "CheckResult",
    "DiffResult",
    "CreateResult",
    "UpdateResult",
]
