"""
Provider Dispatcher

One coroutine per RPC method. Each call:
- Decodes the property bags
- Runs the provider-identity guard (diff, update)
- Resolves a fresh handler from the bag's __provider source
- Invokes the matching capability
- Logs and converts every failure into a ProviderError

The dispatcher holds no per-resource state. Handlers are built per call and
dropped once the result is encoded.
"""

from typing import Any, Dict, Optional

from dynamic_provider.core.capabilities import (
    CheckResult,
    CreateResult,
    DiffResult,
    UpdateResult,
    call_capability,
    coerce_check_result,
    coerce_create_result,
    coerce_diff_result,
    coerce_update_result,
)
from dynamic_provider.core.diagnostics import DiagnosticLogger
from dynamic_provider.core.errors import (
    HandlerExecutionError,
    ProviderError,
    UnsupportedFunctionError,
)
from dynamic_provider.core.handler_loader import resolve_handler
from dynamic_provider.core.identity import guard_diff, guard_update
from dynamic_provider.core.properties import to_property_bag


class ProviderDispatcher:
    """
    Dispatches provider RPCs to dynamically resolved handlers.
    """

    def __init__(self, engine_address: Optional[str] = None,
                 logger: Optional[DiagnosticLogger] = None):
        """
        Initialize dispatcher.

        Args:
            engine_address: Address of the coordinating engine (reserved for callbacks)
            logger: Diagnostic logger (default: stderr at INFO)
        """
        self.engine_address = engine_address
        self.logger = logger or DiagnosticLogger('dispatcher')

    async def configure(self, variables: Any = None) -> None:
        """Acknowledge configuration; no schema is defined"""
        self.logger.debug('Executing configure', method='configure')

    async def invoke(self, tok: str, args: Any = None) -> Dict[str, Any]:
        """Function invocation is not supported"""
        error = UnsupportedFunctionError(tok)
        self.logger.error(str(error), method='invoke', error=error.kind)
        raise error

    async def check(self, news: Dict[str, Any]) -> CheckResult:
        try:
            news = to_property_bag(news)
            self.logger.debug('Executing check', method='check')

            handler = resolve_handler(news)
            result = await call_capability(handler, 'check', news)
            return coerce_check_result(result)
        except Exception as e:
            raise self._failed('check', e)

    async def diff(self, id: str, olds: Dict[str, Any], news: Dict[str, Any]) -> DiffResult:
        try:
            olds = to_property_bag(olds)
            news = to_property_bag(news)
            self.logger.debug('Executing diff', method='diff', resource_id=id)

            forced = guard_diff(olds, news)
            if forced is not None:
                self.logger.info('Provider changed; replacement required',
                                 method='diff', resource_id=id)
                return forced

            handler = resolve_handler(olds)
            result = await call_capability(handler, 'diff', id, olds, news)
            return coerce_diff_result(result)
        except Exception as e:
            raise self._failed('diff', e, resource_id=id)

    async def create(self, news: Dict[str, Any]) -> CreateResult:
        try:
            news = to_property_bag(news)
            self.logger.debug('Executing create', method='create')

            handler = resolve_handler(news)
            result = await call_capability(handler, 'create', news)
            result = coerce_create_result(result)

            self.logger.debug('create completed successfully',
                              method='create', resource_id=result.id)
            return result
        except Exception as e:
            raise self._failed('create', e)

    async def update(self, id: str, olds: Dict[str, Any], news: Dict[str, Any]) -> UpdateResult:
        try:
            olds = to_property_bag(olds)
            news = to_property_bag(news)
            self.logger.debug('Executing update', method='update', resource_id=id)

            guard_update(olds, news)

            handler = resolve_handler(olds)
            result = await call_capability(handler, 'update', id, olds, news)
            return coerce_update_result(result)
        except Exception as e:
            raise self._failed('update', e, resource_id=id)

    async def delete(self, id: str, props: Dict[str, Any]) -> None:
        try:
            props = to_property_bag(props)
            self.logger.debug('Executing delete', method='delete', resource_id=id)

            handler = resolve_handler(props)
            await call_capability(handler, 'delete', id, props)
        except Exception as e:
            raise self._failed('delete', e, resource_id=id)

    def _failed(self, method: str, exc: Exception, resource_id: Optional[str] = None) -> ProviderError:
        """Log a failed call and return the error to raise"""
        self.logger.exception(f'{method} failed: {exc}', exc,
                              method=method, resource_id=resource_id)

        if isinstance(exc, ProviderError):
            return exc

        error = HandlerExecutionError(str(exc) or type(exc).__name__)
        error.__cause__ = exc
        return error
