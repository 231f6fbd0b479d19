"""
RPC surface for the provider

POST /configure - Acknowledge configuration
POST /invoke    - Function invocation (always fails)
POST /check     - Validate inputs
POST /diff      - Compare old and new state
POST /create    - Create a resource
POST /update    - Update a resource in place
POST /delete    - Delete a resource

Failures answer {'status': 'error', 'error': <kind>, 'message': <text>}
with the error kind's HTTP status.
"""

from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dynamic_provider import __version__
from dynamic_provider.core.errors import ProviderError
from dynamic_provider.runtime.dispatcher import ProviderDispatcher


# =============================================================================
# MESSAGES
# =============================================================================

class InvokeRequest(BaseModel):
    tok: str
    args: Any = None


class CheckRequest(BaseModel):
    properties: Dict[str, Any] = Field(default_factory=dict)


class CheckFailureMessage(BaseModel):
    property: str
    reason: str


class CheckResponse(BaseModel):
    defaults: Optional[Dict[str, Any]] = None
    failures: List[CheckFailureMessage] = Field(default_factory=list)


class DiffRequest(BaseModel):
    id: str
    olds: Dict[str, Any] = Field(default_factory=dict)
    news: Dict[str, Any] = Field(default_factory=dict)


class DiffResponse(BaseModel):
    replaces: List[str] = Field(default_factory=list)


class CreateRequest(BaseModel):
    properties: Dict[str, Any] = Field(default_factory=dict)


class CreateResponse(BaseModel):
    id: str
    properties: Optional[Dict[str, Any]] = None


class UpdateRequest(BaseModel):
    id: str
    olds: Dict[str, Any] = Field(default_factory=dict)
    news: Dict[str, Any] = Field(default_factory=dict)


class UpdateResponse(BaseModel):
    properties: Optional[Dict[str, Any]] = None


class DeleteRequest(BaseModel):
    id: str
    properties: Dict[str, Any] = Field(default_factory=dict)


class Empty(BaseModel):
    pass


# =============================================================================
# APP
# =============================================================================

def create_app(dispatcher: Optional[ProviderDispatcher] = None) -> FastAPI:
    """
    Build the RPC app around a dispatcher.

    Args:
        dispatcher: Dispatcher to route calls to (default: a fresh one)

    Returns:
        FastAPI application
    """
    dispatcher = dispatcher or ProviderDispatcher()

    app = FastAPI(title="Dynamic Resource Provider", version=__version__)
    app.state.dispatcher = dispatcher

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        return JSONResponse(
            status_code=exc.http_status,
            content={'status': 'error', 'error': exc.kind, 'message': str(exc)},
        )

    @app.post("/configure", response_model=Empty)
    async def configure(payload: Any = Body(None)):
        # Opaque; no configuration schema is defined
        await dispatcher.configure(payload)
        return Empty()

    @app.post("/invoke")
    async def invoke(req: InvokeRequest):
        return await dispatcher.invoke(req.tok, req.args)

    @app.post("/check", response_model=CheckResponse)
    async def check(req: CheckRequest):
        result = await dispatcher.check(req.properties)
        return CheckResponse(
            defaults=result.defaults,
            failures=[CheckFailureMessage(property=f.property, reason=f.reason)
                      for f in result.failures],
        )

    @app.post("/diff", response_model=DiffResponse)
    async def diff(req: DiffRequest):
        result = await dispatcher.diff(req.id, req.olds, req.news)
        return DiffResponse(replaces=result.replaces)

    @app.post("/create", response_model=CreateResponse)
    async def create(req: CreateRequest):
        result = await dispatcher.create(req.properties)
        return CreateResponse(id=result.id, properties=result.outs)

    @app.post("/update", response_model=UpdateResponse)
    async def update(req: UpdateRequest):
        result = await dispatcher.update(req.id, req.olds, req.news)
        return UpdateResponse(properties=result.outs)

    @app.post("/delete", response_model=Empty)
    async def delete(req: DeleteRequest):
        await dispatcher.delete(req.id, req.properties)
        return Empty()

    return app
