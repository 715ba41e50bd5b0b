"""JSON-RPC client for the Polykey agent's client service.

This module provides :class:`PolykeyClient`, the blocking client every CLI
command uses to talk to the agent. It wraps :class:`httpx.Client` and
layers on:

- **Session tokens** -- when a call carries no ``authorization`` metadata
  the cached session token is attached, and every response that returns a
  refreshed ``Bearer`` token updates the cache.
- **Streaming** -- the agent answers with newline-delimited JSON-RPC
  messages; :meth:`PolykeyClient.stream` yields each result as it arrives
  and :meth:`PolykeyClient.call` returns the first.
- **Error mapping** -- JSON-RPC error objects become typed exceptions:
  ``ErrorClientAuthMissing`` / ``ErrorClientAuthDenied`` map to the
  credential-shaped :class:`~polykey_cli.exceptions.ClientAuthError`
  subclasses, anything else to :class:`~polykey_cli.exceptions.RemoteError`.
  Network failures become :class:`~polykey_cli.exceptions.AgentConnectionError`.

The client is reused across retry attempts; it never reconnects on an
authentication failure.

Example::

    with PolykeyClient(options) as client:
        status = client.call("agentStatus", metadata=auth)
"""

from __future__ import annotations

import itertools
from typing import Any, Iterator, Optional

import httpx
from pydantic import ValidationError

from polykey_cli.auth.encoding import AUTHORIZATION_KEY, AuthMetadata, decode_auth_to_token, token_metadata
from polykey_cli.auth.session import SessionTokenStore
from polykey_cli.exceptions import (
    AgentConnectionError,
    ClientAuthDeniedError,
    ClientAuthMissingError,
    PolykeyCLIError,
    RemoteError,
)
from polykey_cli.models import ClientOptions, RPCErrorPayload, RPCMessage
from polykey_cli.output import debug

RPC_PATH = "/rpc"

_CREDENTIAL_ERRORS: dict[str, type[PolykeyCLIError]] = {
    "ErrorClientAuthMissing": ClientAuthMissingError,
    "ErrorClientAuthDenied": ClientAuthDeniedError,
}

_REMOTE_WRAPPER = "ErrorPolykeyRemote"


class PolykeyClient:
    """Blocking JSON-RPC client for the agent.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        options: Resolved client options (node path, node id, host, port).
        timeout: Per-request timeout in seconds.
        session: Session token store. Defaults to the one in
            ``options.node_path``.
        transport: Optional httpx transport, used by tests to emulate the
            agent.
    """

    def __init__(
        self,
        options: ClientOptions,
        timeout: float = 15.0,
        session: Optional[SessionTokenStore] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._options = options
        self._timeout = timeout
        self._session = session or SessionTokenStore(options.node_path)
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> PolykeyClient:
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        debug(f"Connecting to agent {self._options.node_id} at {self.base_url}")
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @property
    def base_url(self) -> str:
        host = self._options.client_host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"http://{host}:{self._options.client_port}"

    @property
    def session(self) -> SessionTokenStore:
        return self._session

    # ------------------------------------------------------------------ #
    # Public call methods
    # ------------------------------------------------------------------ #

    def call(self, method: str, metadata: Optional[AuthMetadata] = None, **params: Any) -> Any:
        """Invoke a unary RPC *method* and return its result.

        Raises:
            ClientAuthMissingError: The agent requires a credential.
            ClientAuthDeniedError: The agent rejected the credential.
            RemoteError: Any other agent-side error, or an empty response.
            AgentConnectionError: On network / timeout errors.
        """
        messages = self.stream(method, metadata, **params)
        try:
            result = next(messages)
        except StopIteration:
            raise RemoteError(f"No response received for {method}") from None
        finally:
            messages.close()
        return result

    def stream(
        self, method: str, metadata: Optional[AuthMetadata] = None, **params: Any
    ) -> Iterator[Any]:
        """Invoke a streaming RPC *method*, yielding each result message.

        Errors are raised at the point in the stream where the agent sends
        them, with the same mapping as :meth:`call`.
        """
        client = self._require_client()
        payload = self._build_request(method, metadata, params)
        debug(f"RPC {method} (id {payload['id']})")
        try:
            with client.stream("POST", RPC_PATH, json=payload) as response:
                if response.status_code >= 400:
                    response.read()
                    self._raise_for_http_error(response)
                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    yield self._handle_message(line)
        except httpx.TransportError as exc:
            raise AgentConnectionError(
                f"Failed to connect to agent at {self.base_url}: {exc}"
            ) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_client(self) -> httpx.Client:
        assert self._client is not None, "Client not initialised -- use as context manager"
        return self._client

    def _build_request(
        self, method: str, metadata: Optional[AuthMetadata], params: dict[str, Any]
    ) -> dict[str, Any]:
        merged: dict[str, str] = dict(metadata or {})
        if AUTHORIZATION_KEY not in merged:
            token = self._session.read_token()
            if token is not None:
                merged.update(token_metadata(token))
        # Options left unset on the command line are omitted from the call.
        body = {key: value for key, value in params.items() if value is not None}
        body["metadata"] = merged
        return {
            "jsonrpc": "2.0",
            "method": method,
            "params": body,
            "id": next(self._ids),
        }

    def _handle_message(self, line: str) -> Any:
        try:
            message = RPCMessage.model_validate_json(line)
        except ValidationError as exc:
            raise RemoteError(f"Malformed response from agent: {exc}") from exc
        if message.error is not None:
            raise _error_from_payload(message.error)
        self._refresh_session(message.result)
        return message.result

    def _refresh_session(self, result: Any) -> None:
        if not isinstance(result, dict):
            return
        metadata = result.get("metadata")
        if not isinstance(metadata, dict):
            return
        authorization = metadata.get(AUTHORIZATION_KEY)
        if not isinstance(authorization, str):
            return
        token = decode_auth_to_token(authorization)
        if token is not None:
            self._session.write_token(token)

    def _raise_for_http_error(self, response: httpx.Response) -> None:
        for line in response.text.splitlines():
            if line.strip():
                self._handle_message(line)
                break
        status = response.status_code
        detail = response.text[:200]
        raise RemoteError(f"HTTP {status}: {detail}" if detail else f"HTTP {status}")


def _error_from_payload(payload: RPCErrorPayload) -> PolykeyCLIError:
    """Turn a JSON-RPC error object into a typed exception.

    Agent errors relayed from another node arrive wrapped in
    ``ErrorPolykeyRemote``; the innermost ``cause`` decides the type.
    """
    error_type = payload.error_type
    message = payload.message
    data = payload.data
    while error_type == _REMOTE_WRAPPER and isinstance(data.get("cause"), dict):
        data = data["cause"]
        error_type = data.get("type") if isinstance(data.get("type"), str) else None
        message = data.get("message") or message

    credential_error = _CREDENTIAL_ERRORS.get(error_type or "")
    if credential_error is not None:
        return credential_error(message)

    exit_code = data.get("exitCode")
    return RemoteError(
        message,
        error_type=error_type,
        data=data,
        exit_code=exit_code if isinstance(exit_code, int) else None,
    )
