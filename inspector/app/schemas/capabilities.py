from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field


class CapabilityKind(str, Enum):
    TOOL = "tool"
    RESOURCE = "resource"
    TEMPLATE = "template"
    PROMPT = "prompt"


class _Definition(BaseModel):
    # Providers ship vendor fields we don't model; keep them for the raw view.
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    name: str
    title: str | None = None
    description: str | None = None

    @property
    def display_name(self) -> str:
        if self.title and self.title != self.name:
            return f"{self.title} ({self.name})"
        return self.title or self.name


class ToolDefinition(_Definition):
    input_schema: dict[str, Any] | None = Field(default=None, alias="inputSchema")


class ResourceDefinition(_Definition):
    uri: str
    mime_type: str | None = Field(default=None, alias="mimeType")


class ResourceTemplateDefinition(_Definition):
    uri_template: str = Field(alias="uriTemplate")
    mime_type: str | None = Field(default=None, alias="mimeType")


class PromptDefinition(_Definition):
    # MCP servers send a list; older servers a name->definition mapping or an inputSchema.
    arguments: list[Any] | dict[str, Any] | None = None
    input_schema: dict[str, Any] | None = Field(default=None, alias="inputSchema")


CapabilityDefinition = Union[ToolDefinition, ResourceDefinition, ResourceTemplateDefinition, PromptDefinition]

DEFINITION_TYPES: dict[CapabilityKind, type[_Definition]] = {
    CapabilityKind.TOOL: ToolDefinition,
    CapabilityKind.RESOURCE: ResourceDefinition,
    CapabilityKind.TEMPLATE: ResourceTemplateDefinition,
    CapabilityKind.PROMPT: PromptDefinition,
}


class ProviderInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    color: str | None = None


class AttributedCapability(BaseModel):
    """A capability definition stamped with the provider it was listed by."""

    model_config = ConfigDict(frozen=True)

    kind: CapabilityKind
    definition: CapabilityDefinition
    provider_id: str
    provider_name: str
    provider_color: str | None = None

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def provider(self) -> ProviderInfo:
        return ProviderInfo(id=self.provider_id, name=self.provider_name, color=self.provider_color)

    def to_public(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "display_name": self.definition.display_name,
            "description": self.definition.description or "",
            "provider": {
                "id": self.provider_id,
                "name": self.provider_name,
                "color": self.provider_color,
            },
            "definition": self.definition.model_dump(mode="json", by_alias=True, exclude_none=True),
        }


def parse_definition(kind: CapabilityKind, raw: Any) -> CapabilityDefinition:
    if isinstance(raw, DEFINITION_TYPES[kind]):
        return raw
    return DEFINITION_TYPES[kind].model_validate(raw)
