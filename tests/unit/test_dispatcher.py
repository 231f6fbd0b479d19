"""
Unit tests for the provider dispatcher

The dispatcher decodes bags, guards provider changes, resolves a handler per
call and converts every failure into a ProviderError.
"""

import io

import pytest

from dynamic_provider.core.capabilities import CheckFailure, CheckResult, CreateResult, DiffResult
from dynamic_provider.core.diagnostics import DiagnosticLogger
from dynamic_provider.core.errors import (
    HandlerExecutionError,
    HandlerLoadError,
    InvalidHandlerResultError,
    InvalidPropertiesError,
    InvariantViolationError,
    MissingHandlerError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
)
from dynamic_provider.runtime.dispatcher import ProviderDispatcher
from tests.fixtures import handler_source


@pytest.fixture
def logger():
    return DiagnosticLogger('dispatcher', stream=io.StringIO(), level='DEBUG')


@pytest.fixture
def dispatcher(logger):
    return ProviderDispatcher(engine_address='127.0.0.1:9999', logger=logger)


def bag(handler, **props):
    return {'__provider': handler_source(handler), **props}


class TestConfigureAndInvoke:

    @pytest.mark.asyncio
    @pytest.mark.parametrize('variables', [None, {}, {'aws:region': 'us-west-2'}])
    async def test_configure_acknowledges(self, dispatcher, variables):
        assert await dispatcher.configure(variables) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize('tok', ['aws:index:getAmi', 'x', ''])
    async def test_invoke_always_fails(self, dispatcher, tok):
        """Should fail naming the requested token"""
        with pytest.raises(UnsupportedFunctionError) as exc_info:
            await dispatcher.invoke(tok, {'any': 'args'})

        assert tok in str(exc_info.value)
        assert exc_info.value.tok == tok

    def test_keeps_engine_address(self, dispatcher):
        assert dispatcher.engine_address == '127.0.0.1:9999'


class TestCheck:

    @pytest.mark.asyncio
    async def test_check_failure_reported(self, dispatcher):
        """Should carry the handler's single failure and no defaults"""
        result = await dispatcher.check(bag('validating'))

        assert result == CheckResult(
            defaults=None,
            failures=[CheckFailure(property='name', reason='required')],
        )

    @pytest.mark.asyncio
    async def test_check_passes(self, dispatcher):
        result = await dispatcher.check(bag('validating', name='n'))
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_check_default_when_omitted(self, dispatcher):
        result = await dispatcher.check(bag('echo', name='n'))
        assert result == CheckResult()

    @pytest.mark.asyncio
    async def test_check_defaults_from_sync_handler(self, dispatcher):
        result = await dispatcher.check(bag('sync_methods'))
        assert result.defaults == {'region': 'local'}

    @pytest.mark.asyncio
    async def test_check_without_provider(self, dispatcher):
        with pytest.raises(MissingHandlerError):
            await dispatcher.check({'name': 'n'})


class TestDiff:

    @pytest.mark.asyncio
    async def test_provider_change_forces_replacement(self, dispatcher):
        """Should replace without ever calling the handler's diff"""
        olds = bag('exploding_diff', x=1)
        news = bag('echo', x=1)

        result = await dispatcher.diff('boom', olds, news)

        assert result == DiffResult(replaces=['__provider'])

    @pytest.mark.asyncio
    async def test_provider_change_wins_over_other_changes(self, dispatcher):
        olds = bag('replacing', size=1)
        news = {'__provider': handler_source('replacing') + '\n# v2\n', 'size': 2}

        result = await dispatcher.diff('disk-1', olds, news)

        assert result.replaces == ['__provider']

    @pytest.mark.asyncio
    async def test_same_provider_delegates(self, dispatcher):
        result = await dispatcher.diff('disk-1', bag('replacing', size=1), bag('replacing', size=2))
        assert result == DiffResult(replaces=['size'])

    @pytest.mark.asyncio
    async def test_same_provider_no_changes(self, dispatcher):
        result = await dispatcher.diff('disk-1', bag('replacing', size=1), bag('replacing', size=1))
        assert result.replaces == []

    @pytest.mark.asyncio
    async def test_non_list_replaces_is_bad_result(self, dispatcher):
        """Should report a malformed diff result, not a handler crash"""
        source = ('class P:\n    async def diff(self, id, olds, news):\n'
                  "        return {'replaces': 5}\n\ndef handler():\n    return P()\n")
        olds = {'__provider': source, 'x': 1}
        news = {'__provider': source, 'x': 2}

        with pytest.raises(InvalidHandlerResultError):
            await dispatcher.diff('p', olds, news)

    @pytest.mark.asyncio
    async def test_handler_diff_error_wrapped(self, dispatcher):
        """Should surface arbitrary handler errors with their message"""
        with pytest.raises(HandlerExecutionError) as exc_info:
            await dispatcher.diff('boom', bag('exploding_diff', x=1), bag('exploding_diff', x=2))

        assert 'diff should not have been called' in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestCreate:

    @pytest.mark.asyncio
    async def test_create(self, dispatcher):
        result = await dispatcher.create(bag('echo', name='n'))
        assert result == CreateResult(id='abc', outs={'x': 1})

    @pytest.mark.asyncio
    async def test_create_with_dataclass_result(self, dispatcher):
        result = await dispatcher.create(bag('replacing', size=8))
        assert result == CreateResult(id='disk-8', outs={'size': 8})

    @pytest.mark.asyncio
    async def test_create_without_outs(self, dispatcher):
        result = await dispatcher.create(bag('create_only', name='web'))
        assert result == CreateResult(id='web', outs=None)

    @pytest.mark.asyncio
    async def test_create_with_sync_handler(self, dispatcher):
        result = await dispatcher.create(bag('sync_methods', region='eu'))
        assert result == CreateResult(id='sync-1', outs={'region': 'eu'})

    @pytest.mark.asyncio
    async def test_create_handler_error(self, dispatcher, logger):
        """Should log the failure with its stack trace and re-raise"""
        with pytest.raises(HandlerExecutionError) as exc_info:
            await dispatcher.create(bag('failing'))

        assert str(exc_info.value) == 'quota exceeded'

        errors = logger.get_logs(level='ERROR', method='create')
        assert len(errors) == 1
        assert 'ValueError: quota exceeded' in errors[0]['traceback']

    @pytest.mark.asyncio
    async def test_create_bad_result(self, dispatcher):
        source = 'class P:\n    async def create(self, news):\n        return {}\n\ndef handler():\n    return P()\n'
        with pytest.raises(InvalidHandlerResultError):
            await dispatcher.create({'__provider': source})

    @pytest.mark.asyncio
    async def test_create_broken_factory(self, dispatcher):
        with pytest.raises(HandlerLoadError):
            await dispatcher.create(bag('broken_factory'))

    @pytest.mark.asyncio
    async def test_create_invalid_properties(self, dispatcher):
        with pytest.raises(InvalidPropertiesError):
            await dispatcher.create({'__provider': handler_source('echo'), 'bad': object()})


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update(self, dispatcher):
        result = await dispatcher.update('abc', bag('echo', name='old'), bag('echo', name='new'))
        assert result.outs == {'name': 'new', 'id': 'abc'}

    @pytest.mark.asyncio
    async def test_update_across_provider_change(self, dispatcher):
        """Should refuse before resolving either handler"""
        with pytest.raises(InvariantViolationError):
            await dispatcher.update('abc', bag('echo'), bag('exploding_diff'))

    @pytest.mark.asyncio
    async def test_update_missing_on_one_side(self, dispatcher):
        with pytest.raises(InvariantViolationError):
            await dispatcher.update('abc', bag('echo'), {'name': 'n'})

    @pytest.mark.asyncio
    async def test_update_unsupported(self, dispatcher):
        """Should fail when the handler omits update"""
        with pytest.raises(UnsupportedOperationError):
            await dispatcher.update('abc', bag('create_only', name='a'), bag('create_only', name='b'))

    @pytest.mark.asyncio
    async def test_update_uses_olds_handler(self, dispatcher):
        """Should pass both bags to the handler resolved from olds"""
        result = await dispatcher.update('x', bag('exploding_diff', a=1), bag('exploding_diff', a=2))
        assert result.outs['a'] == 2


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete(self, dispatcher):
        assert await dispatcher.delete('abc', bag('echo')) is None

    @pytest.mark.asyncio
    async def test_delete_sync(self, dispatcher):
        assert await dispatcher.delete('sync-1', bag('sync_methods')) is None

    @pytest.mark.asyncio
    async def test_delete_handler_error(self, dispatcher):
        with pytest.raises(HandlerExecutionError) as exc_info:
            await dispatcher.delete('gone', bag('failing'))

        assert 'gone' in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_delete_unsupported(self, dispatcher):
        with pytest.raises(UnsupportedOperationError):
            await dispatcher.delete('web', bag('create_only'))

    @pytest.mark.asyncio
    async def test_delete_without_provider(self, dispatcher):
        with pytest.raises(MissingHandlerError):
            await dispatcher.delete('abc', {})
