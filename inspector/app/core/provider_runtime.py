from __future__ import annotations

import asyncio
import datetime
from dataclasses import dataclass
from time import perf_counter
from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND
from mcp_use import MCPClient
from pydantic import BaseModel

from inspector.app.core.logger import get_logger
from inspector.app.schemas.capabilities import AttributedCapability, ProviderInfo
from inspector.app.services.aggregator import ProviderListing
from inspector.env import ENV


logger = get_logger(__name__)

# (session method, attribute holding the items on the listing result)
_LISTINGS = {
    "tools": ("list_tools", "tools"),
    "resources": ("list_resources", "resources"),
    "resource_templates": ("list_resource_templates", "resourceTemplates"),
    "prompts": ("list_prompts", "prompts"),
}


class ProviderNotConnectedError(LookupError):
    pass


class ProviderConnectionError(RuntimeError):
    pass


def to_plain(value: Any) -> Any:
    """Convert MCP SDK models into JSON-compatible builtins."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def _listing_items(result: Any, attribute: str) -> list[Any]:
    if result is None:
        return []
    if isinstance(result, (list, tuple)):
        return list(result)
    if isinstance(result, dict):
        return list(result.get(attribute) or [])
    return list(getattr(result, attribute, None) or [])


def _is_method_not_found(exc: Exception) -> bool:
    if isinstance(exc, McpError) and getattr(exc.error, "code", None) == METHOD_NOT_FOUND:
        return True
    return "method not found" in str(exc).lower()


async def _session_call(session: Any, method: str, *args: Any) -> Any:
    """Call ``method`` on the session, falling back to its connector layers."""
    connector = getattr(session, "connector", None)
    targets = (session, connector, getattr(connector, "client_session", None))
    for target in targets:
        if target is not None and hasattr(target, method):
            return await getattr(target, method)(*args)
    raise AttributeError(f"MCP session does not support '{method}'")


@dataclass
class ProviderConnection:
    provider: ProviderInfo
    url: str
    client: Any
    session: Any
    listing: ProviderListing
    connected_on: datetime.datetime
    latency_ms: int

    def counts(self) -> dict[str, int]:
        return {key: len(getattr(self.listing, key)) for key in _LISTINGS}


class ProviderRuntime:
    """Live MCP sessions, one per connected provider, in connection order."""

    def __init__(
        self,
        client_cls: Any = MCPClient,
        connect_timeout_sec: float | None = None,
        list_timeout_sec: float | None = None,
    ) -> None:
        self.client_cls = client_cls
        self.connect_timeout_sec = connect_timeout_sec or ENV.provider_connect_timeout_sec
        self.list_timeout_sec = list_timeout_sec or ENV.provider_list_timeout_sec
        self._connections: dict[str, ProviderConnection] = {}
        self._lock = asyncio.Lock()

    async def _list(self, provider: ProviderInfo, session: Any, key: str) -> list[Any]:
        method, attribute = _LISTINGS[key]
        try:
            result = await asyncio.wait_for(_session_call(session, method), timeout=self.list_timeout_sec)
        except Exception as exc:
            if key == "resource_templates" and _is_method_not_found(exc):
                logger.info("Provider '%s' does not support resource templates", provider.name)
            else:
                logger.warning("Could not list %s for provider '%s': %s", key, provider.name, exc)
            return []
        return [to_plain(item) for item in _listing_items(result, attribute)]

    async def connect(self, provider: ProviderInfo, url: str) -> ProviderConnection:
        async with self._lock:
            if provider.id in self._connections:
                await self._close(self._connections.pop(provider.id))

            started = perf_counter()
            client = self.client_cls({"mcpServers": {provider.id: {"url": url}}})
            logger.info("Connecting to provider '%s' at %s", provider.name, url)
            try:
                await asyncio.wait_for(client.create_all_sessions(), timeout=self.connect_timeout_sec)
                session = client.get_session(provider.id)
            except Exception as exc:
                logger.warning("Connection to provider '%s' failed: %s", provider.name, exc)
                await self._close_client(provider, client)
                raise ProviderConnectionError(f"Could not connect to '{provider.name}': {exc}") from exc

            tools, resources, templates, prompts = await asyncio.gather(
                *(self._list(provider, session, key) for key in _LISTINGS)
            )
            connection = ProviderConnection(
                provider=provider,
                url=url,
                client=client,
                session=session,
                listing=ProviderListing(
                    provider=provider,
                    tools=tools,
                    resources=resources,
                    resource_templates=templates,
                    prompts=prompts,
                ),
                connected_on=datetime.datetime.now(datetime.timezone.utc),
                latency_ms=int((perf_counter() - started) * 1000),
            )
            self._connections[provider.id] = connection
            logger.info("Provider '%s' connected: %s", provider.name, connection.counts())
            return connection

    async def _close_client(self, provider: ProviderInfo, client: Any) -> None:
        close = getattr(client, "close_all_sessions", None)
        if close is None:
            return
        try:
            await close()
        except Exception as exc:
            logger.warning("Error closing sessions for provider '%s': %s", provider.name, exc)

    async def _close(self, connection: ProviderConnection) -> None:
        await self._close_client(connection.provider, connection.client)

    async def disconnect(self, provider_id: str) -> bool:
        async with self._lock:
            connection = self._connections.pop(provider_id, None)
            if connection is None:
                return False
            await self._close(connection)
            logger.info("Provider '%s' disconnected", connection.provider.name)
            return True

    async def disconnect_all(self) -> int:
        count = 0
        for provider_id in list(self._connections):
            if await self.disconnect(provider_id):
                count += 1
        return count

    def connection(self, provider_id: str) -> ProviderConnection | None:
        return self._connections.get(provider_id)

    def is_connected(self, provider_id: str) -> bool:
        return provider_id in self._connections

    def connections(self) -> list[ProviderConnection]:
        return list(self._connections.values())

    def listings(self) -> list[ProviderListing]:
        return [connection.listing for connection in self._connections.values()]

    def _require_session(self, provider_id: str) -> Any:
        connection = self._connections.get(provider_id)
        if connection is None:
            raise ProviderNotConnectedError(f"Server {provider_id} is not connected")
        return connection.session

    async def invoke_tool(self, tool: AttributedCapability, payload: dict[str, Any]) -> Any:
        session = self._require_session(tool.provider_id)
        return to_plain(await _session_call(session, "call_tool", tool.name, payload))

    async def read_resource(self, provider_id: str, uri: str) -> Any:
        session = self._require_session(provider_id)
        return to_plain(await _session_call(session, "read_resource", uri))

    async def get_prompt(self, provider_id: str, name: str, arguments: dict[str, Any]) -> Any:
        session = self._require_session(provider_id)
        return to_plain(await _session_call(session, "get_prompt", name, arguments))
