"""
Provider client

Calls a running provider endpoint the way the engine does. Used by the
integration tests and handy for poking at a provider by hand:

    client = ProviderClient(port=54321)
    result = client.create({'__provider': source, 'name': 'n'})
"""

from typing import Any, Dict, Optional

import requests

from dynamic_provider.core.capabilities import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    UpdateResult,
)


class RPCError(Exception):
    """Raised when the provider answers a call with a failure"""

    def __init__(self, kind: str, message: str, status_code: int):
        super().__init__(f"{kind}: {message}")
        self.kind = kind
        self.message = message
        self.status_code = status_code


class ProviderClient:
    """HTTP client for the provider RPC surface"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        port: Optional[int] = None,
        host: str = '127.0.0.1',
        timeout: Optional[float] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Full URL of the provider (e.g., 'http://127.0.0.1:54321')
            port: Port announced by the provider (used when base_url is omitted)
            host: Host for port-based addressing
            timeout: Request timeout in seconds (None waits forever)
        """
        if base_url is None:
            if port is None:
                raise ValueError("Either base_url or port is required")
            base_url = f'http://{host}:{port}'

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def configure(self, variables: Optional[Dict[str, Any]] = None) -> None:
        self._call('configure', {'variables': variables or {}})

    def invoke(self, tok: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._call('invoke', {'tok': tok, 'args': args or {}})

    def check(self, news: Dict[str, Any]) -> CheckResult:
        data = self._call('check', {'properties': news})
        return CheckResult(
            defaults=data.get('defaults'),
            failures=[CheckFailure(property=f['property'], reason=f['reason'])
                      for f in data.get('failures', [])],
        )

    def diff(self, id: str, olds: Dict[str, Any], news: Dict[str, Any]) -> DiffResult:
        data = self._call('diff', {'id': id, 'olds': olds, 'news': news})
        return DiffResult(replaces=data.get('replaces', []))

    def create(self, news: Dict[str, Any]) -> CreateResult:
        data = self._call('create', {'properties': news})
        return CreateResult(id=data['id'], outs=data.get('properties'))

    def update(self, id: str, olds: Dict[str, Any], news: Dict[str, Any]) -> UpdateResult:
        data = self._call('update', {'id': id, 'olds': olds, 'news': news})
        return UpdateResult(outs=data.get('properties'))

    def delete(self, id: str, props: Dict[str, Any]) -> None:
        self._call('delete', {'id': id, 'properties': props})

    def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(f'{self.base_url}/{method}', json=payload,
                                     timeout=self.timeout)

        if response.status_code == 200:
            return response.json()

        try:
            data = response.json()
        except ValueError:
            data = {}

        if isinstance(data, dict) and data.get('status') == 'error':
            raise RPCError(data.get('error', 'Error'), data.get('message', ''),
                           response.status_code)

        # Request validation failures and anything else non-provider
        raise RPCError('RequestError', response.text, response.status_code)
