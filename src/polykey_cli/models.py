"""Pydantic models shared across polykey_cli modules.

The models fall into two groups:

**Local state** -- read from the agent's node path:
    :class:`AgentStatusData` and :class:`AgentStatusFile` describe the
    ``status.json`` file a running agent maintains; :class:`ClientOptions`
    is the resolved address of the agent's client service.

**RPC envelopes** -- JSON-RPC 2.0 messages exchanged with the agent:
    :class:`RPCErrorPayload` and :class:`RPCMessage`.

Field names follow the agent's camelCase wire format through aliases, with
``populate_by_name`` so Python code can use snake_case.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Local state ---


class AgentStatus(str, enum.Enum):
    """Lifecycle states written to the status file by the agent."""

    STARTING = "STARTING"
    LIVE = "LIVE"
    STOPPING = "STOPPING"
    DEAD = "DEAD"


class AgentStatusData(BaseModel):
    """Connection details published by a live agent."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    pid: Optional[int] = None
    node_id: Optional[str] = Field(default=None, alias="nodeId")
    client_host: Optional[str] = Field(default=None, alias="clientHost")
    client_port: Optional[int] = Field(default=None, alias="clientPort")
    agent_host: Optional[str] = Field(default=None, alias="agentHost")
    agent_port: Optional[int] = Field(default=None, alias="agentPort")


class AgentStatusFile(BaseModel):
    """Contents of ``<node-path>/status.json``."""

    status: AgentStatus
    data: AgentStatusData = Field(default_factory=AgentStatusData)


class ClientOptions(BaseModel):
    """Resolved address of the agent's client service.

    Produced by :func:`~polykey_cli.config.resolve_client_options` from CLI
    options, environment variables, and the status file.
    """

    node_path: str
    node_id: str
    client_host: str
    client_port: int = Field(ge=0, le=65535)


# --- RPC envelopes ---


class RPCErrorPayload(BaseModel):
    """The ``error`` member of a JSON-RPC response.

    The agent puts its error class name in ``data.type`` (for example
    ``"ErrorClientAuthMissing"``) so that the client can reconstruct a typed
    exception.
    """

    code: int = 0
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def error_type(self) -> Optional[str]:
        value = self.data.get("type")
        return value if isinstance(value, str) else None


class RPCMessage(BaseModel):
    """A single JSON-RPC 2.0 response message."""

    model_config = ConfigDict(extra="allow")

    jsonrpc: str = "2.0"
    id: Optional[int | str] = None
    result: Optional[Any] = None
    error: Optional[RPCErrorPayload] = None
