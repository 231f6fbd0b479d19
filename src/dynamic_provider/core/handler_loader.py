"""
Handler Loader

Loads handler source embedded in a property bag and builds the handler.

Design principles:
- The __provider value is Python module source exporting a `handler` factory
- Source is loaded and the factory called fresh on every resolution
- Nothing is cached; a handler lives for exactly one RPC call
- Errors are caught and wrapped with context
"""

import hashlib
import importlib.util
import sys
from types import ModuleType
from typing import Any, Mapping

from dynamic_provider.core.errors import HandlerLoadError, MissingHandlerError
from dynamic_provider.core.properties import PROVIDER_KEY

# Name of the factory every handler module must export
FACTORY_NAME = 'handler'


def get_handler_reference(bag: Mapping[str, Any]) -> str:
    """
    Read the handler reference out of a property bag.

    Raises:
        MissingHandlerError: If __provider is absent or not a string
    """
    if PROVIDER_KEY not in bag:
        raise MissingHandlerError(f"Property bag has no '{PROVIDER_KEY}' entry")

    reference = bag[PROVIDER_KEY]
    if not isinstance(reference, str):
        raise MissingHandlerError(
            f"'{PROVIDER_KEY}' must be a string, got {type(reference).__name__}"
        )

    return reference


def load_handler_module(source: str) -> ModuleType:
    """
    Load handler source as a module.

    Args:
        source: Python source of the handler module

    Returns:
        The executed module object

    Raises:
        HandlerLoadError: If the source can't be compiled or executed
    """
    digest = hashlib.sha256(source.encode('utf-8')).hexdigest()[:12]
    module_name = f'dynamic_provider_handler_{digest}'
    filename = f'<handler:{digest}>'

    try:
        code = compile(source, filename, 'exec')
    except SyntaxError as e:
        raise HandlerLoadError(f"Syntax error in handler source {filename}: {e}") from e

    spec = importlib.util.spec_from_loader(module_name, loader=None, origin=filename)
    module = importlib.util.module_from_spec(spec)
    module.__file__ = filename

    # Registered only while executing (dataclasses and pickling look it up)
    previous = sys.modules.get(module_name)
    sys.modules[module_name] = module
    try:
        exec(code, module.__dict__)
    except Exception as e:
        raise HandlerLoadError(
            f"Failed to load handler source {filename}: {type(e).__name__}: {e}"
        ) from e
    finally:
        if previous is None:
            sys.modules.pop(module_name, None)
        else:
            sys.modules[module_name] = previous

    return module


def instantiate_handler(module: ModuleType) -> Any:
    """
    Call the module's handler factory.

    Raises:
        HandlerLoadError: If the factory is missing, not callable, or raises
    """
    factory = getattr(module, FACTORY_NAME, None)
    if factory is None:
        raise HandlerLoadError(
            f"Handler source {module.__file__} does not export a '{FACTORY_NAME}' factory"
        )
    if not callable(factory):
        raise HandlerLoadError(
            f"'{FACTORY_NAME}' in handler source {module.__file__} is not callable"
        )

    try:
        return factory()
    except Exception as e:
        raise HandlerLoadError(
            f"Handler factory in {module.__file__} failed: {type(e).__name__}: {e}"
        ) from e


def resolve_handler(bag: Mapping[str, Any]) -> Any:
    """
    Resolve the handler governing a property bag.

    Args:
        bag: Property bag carrying a __provider entry

    Returns:
        A fresh handler object

    Raises:
        MissingHandlerError: If __provider is absent or malformed
        HandlerLoadError: If the source or factory fails
    """
    source = get_handler_reference(bag)
    module = load_handler_module(source)
    return instantiate_handler(module)
