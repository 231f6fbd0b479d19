"""
Provider errors

Every failure the dispatcher can surface to the engine is a ProviderError.
Each kind carries the HTTP status the RPC surface answers with.
"""


class ProviderError(Exception):
    """Base exception for provider dispatch errors"""
    http_status = 500

    @property
    def kind(self) -> str:
        return type(self).__name__


class MissingHandlerError(ProviderError):
    """Raised when the property bag has no usable __provider entry"""
    http_status = 400


class InvalidPropertiesError(ProviderError):
    """Raised when a property bag is not a structured document"""
    http_status = 400


class HandlerLoadError(ProviderError):
    """Raised when handler source can't be loaded or its factory fails"""
    http_status = 422


class UnsupportedOperationError(ProviderError):
    """Raised when a handler doesn't implement a required operation"""
    http_status = 501


class UnsupportedFunctionError(ProviderError):
    """Raised for every invoke call"""
    http_status = 501

    def __init__(self, tok: str):
        super().__init__(f"unknown function {tok}")
        self.tok = tok


class InvariantViolationError(ProviderError):
    """Raised when an update is requested across a provider change"""
    http_status = 409


class InvalidHandlerResultError(ProviderError):
    """Raised when a handler returns a result of the wrong shape"""
    http_status = 500


class HandlerExecutionError(ProviderError):
    """Raised when handler code fails with an arbitrary exception"""
    http_status = 500
