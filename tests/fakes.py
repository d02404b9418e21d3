from typing import Any

from inspector.app.schemas.capabilities import ProviderInfo
from inspector.app.services.aggregator import ProviderListing


WEATHER = ProviderInfo(id="weather-1a2b3c", name="weather", color="blue")
FILES = ProviderInfo(id="files-4d5e6f", name="files", color="green")


def weather_listing() -> ProviderListing:
    return ProviderListing(
        provider=WEATHER,
        tools=[
            {
                "name": "forecast",
                "description": "Daily forecast",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "city": {"type": "string"},
                        "days": {"type": "integer", "default": 3},
                        "units": {"type": "string", "enum": ["metric", "imperial"]},
                    },
                    "required": ["city", "units"],
                },
            },
            {"name": "alerts", "inputSchema": {"type": "object", "properties": {}}},
        ],
        prompts=[{"name": "summarize", "arguments": [{"name": "q", "required": True}]}],
    )


def files_listing() -> ProviderListing:
    return ProviderListing(
        provider=FILES,
        resources=[{"name": "readme", "uri": "file:///README.md", "mimeType": "text/markdown"}],
        resource_templates=[{"name": "user file", "uriTemplate": "file:///users/{user}/{path}"}],
    )


class FakeBackend:
    """In-process stand-in for connected providers."""

    def __init__(self, listings: list[ProviderListing] | None = None) -> None:
        self._listings = list(listings or [])
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, Exception] = {}

    def listings(self) -> list[ProviderListing]:
        return list(self._listings)

    def set_listings(self, listings: list[ProviderListing]) -> None:
        self._listings = list(listings)

    def _maybe_fail(self, key: str) -> None:
        if key in self.failures:
            raise self.failures[key]

    async def invoke_tool(self, tool, payload: dict[str, Any]) -> Any:
        self.calls.append(("tool", (tool.provider_id, tool.name, payload)))
        self._maybe_fail(tool.name)
        return {"content": [{"type": "text", "text": f"{tool.name} ok"}], "isError": False}

    async def read_resource(self, provider_id: str, uri: str) -> Any:
        self.calls.append(("resource", (provider_id, uri)))
        self._maybe_fail(uri)
        return {"contents": [{"uri": uri, "text": f"contents of {uri}"}]}

    async def get_prompt(self, provider_id: str, name: str, arguments: dict[str, Any]) -> Any:
        self.calls.append(("prompt", (provider_id, name, arguments)))
        self._maybe_fail(name)
        return {"messages": [{"role": "user", "content": {"type": "text", "text": f"prompt {name}"}}]}


class FakeMCPSession:
    def __init__(self, tools=None, resources=None, templates=None, prompts=None, template_error=None):
        self._tools = tools or []
        self._resources = resources or []
        self._templates = templates or []
        self._prompts = prompts or []
        self._template_error = template_error
        self.calls: list[tuple[str, Any]] = []

    async def list_tools(self):
        return self._tools

    async def list_resources(self):
        return self._resources

    async def list_resource_templates(self):
        if self._template_error is not None:
            raise self._template_error
        return {"resourceTemplates": self._templates}

    async def list_prompts(self):
        return self._prompts

    async def call_tool(self, name, arguments):
        self.calls.append(("call_tool", (name, arguments)))
        return {"content": [{"type": "text", "text": f"called {name}"}], "isError": False}

    async def read_resource(self, uri):
        self.calls.append(("read_resource", uri))
        return {"contents": [{"uri": uri, "text": "hello"}]}

    async def get_prompt(self, name, arguments):
        self.calls.append(("get_prompt", (name, arguments)))
        return {"messages": [{"role": "user", "content": {"type": "text", "text": name}}]}


class FakeMCPClientFactory:
    """Builds MCPClient look-alikes that hand out preconfigured sessions by URL."""

    def __init__(self) -> None:
        self.sessions: dict[str, FakeMCPSession] = {}
        self.unreachable: set[str] = set()
        self.closed: list[str] = []

    def __call__(self, config: dict[str, Any]):
        factory = self
        (name, server), = config["mcpServers"].items()

        class _Client:
            async def create_all_sessions(self):
                if server["url"] in factory.unreachable:
                    raise ConnectionError(f"connection refused: {server['url']}")

            def get_session(self, session_name):
                assert session_name == name
                return factory.sessions[server["url"]]

            async def close_all_sessions(self):
                factory.closed.append(name)

        return _Client()
