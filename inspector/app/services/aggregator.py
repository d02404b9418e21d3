"""Merge capability listings from many providers into one attributed catalog.

Every item carries the provider it came from; filtering and grouping only
ever select items, they never rewrite attribution.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Iterable, Iterator

from pydantic import ValidationError

from inspector.app.core.logger import get_logger
from inspector.app.schemas.capabilities import (
    AttributedCapability,
    CapabilityKind,
    ProviderInfo,
    parse_definition,
)


logger = get_logger(__name__)

ALL_PROVIDERS = "all"


@dataclass
class ProviderListing:
    """Raw capability listings fetched from one connected provider."""

    provider: ProviderInfo
    tools: list[Any] = field(default_factory=list)
    resources: list[Any] = field(default_factory=list)
    resource_templates: list[Any] = field(default_factory=list)
    prompts: list[Any] = field(default_factory=list)
    error: str | None = None
    is_alive: bool = True

    def raw(self, kind: CapabilityKind) -> list[Any]:
        return {
            CapabilityKind.TOOL: self.tools,
            CapabilityKind.RESOURCE: self.resources,
            CapabilityKind.TEMPLATE: self.resource_templates,
            CapabilityKind.PROMPT: self.prompts,
        }[kind]


@dataclass(frozen=True)
class CapabilitySet:
    tools: tuple[AttributedCapability, ...] = ()
    resources: tuple[AttributedCapability, ...] = ()
    prompts: tuple[AttributedCapability, ...] = ()
    resource_templates: tuple[AttributedCapability, ...] = ()
    revision: int = 0

    def section(self, kind: CapabilityKind) -> tuple[AttributedCapability, ...]:
        return {
            CapabilityKind.TOOL: self.tools,
            CapabilityKind.RESOURCE: self.resources,
            CapabilityKind.TEMPLATE: self.resource_templates,
            CapabilityKind.PROMPT: self.prompts,
        }[kind]

    def __iter__(self) -> Iterator[AttributedCapability]:
        # Provider discovery order depends on this sequence.
        yield from self.tools
        yield from self.resources
        yield from self.prompts
        yield from self.resource_templates

    def __len__(self) -> int:
        return len(self.tools) + len(self.resources) + len(self.prompts) + len(self.resource_templates)


@dataclass(frozen=True)
class ProviderGroup:
    provider: ProviderInfo
    capabilities: CapabilitySet


@dataclass(frozen=True)
class CapabilityStats:
    tools: int
    resources: int
    prompts: int
    templates: int
    total: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _attribute(listing: ProviderListing, kind: CapabilityKind) -> list[AttributedCapability]:
    attributed: list[AttributedCapability] = []
    for raw in listing.raw(kind) or []:
        try:
            definition = parse_definition(kind, raw)
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s from provider '%s' (%d validation errors)",
                kind.value,
                listing.provider.name,
                exc.error_count(),
            )
            continue
        attributed.append(
            AttributedCapability(
                kind=kind,
                definition=definition,
                provider_id=listing.provider.id,
                provider_name=listing.provider.name,
                provider_color=listing.provider.color,
            )
        )
    return attributed


def aggregate(listings: Iterable[ProviderListing], revision: int = 0) -> CapabilitySet:
    tools: list[AttributedCapability] = []
    resources: list[AttributedCapability] = []
    prompts: list[AttributedCapability] = []
    templates: list[AttributedCapability] = []

    for listing in listings:
        if listing.error or not listing.is_alive:
            continue
        tools.extend(_attribute(listing, CapabilityKind.TOOL))
        resources.extend(_attribute(listing, CapabilityKind.RESOURCE))
        prompts.extend(_attribute(listing, CapabilityKind.PROMPT))
        templates.extend(_attribute(listing, CapabilityKind.TEMPLATE))

    return CapabilitySet(
        tools=tuple(tools),
        resources=tuple(resources),
        prompts=tuple(prompts),
        resource_templates=tuple(templates),
        revision=revision,
    )


def filter_by_provider(capabilities: CapabilitySet, provider_id: str) -> CapabilitySet:
    if provider_id == ALL_PROVIDERS:
        return capabilities

    def _own(items: tuple[AttributedCapability, ...]) -> tuple[AttributedCapability, ...]:
        return tuple(item for item in items if item.provider_id == provider_id)

    return replace(
        capabilities,
        tools=_own(capabilities.tools),
        resources=_own(capabilities.resources),
        prompts=_own(capabilities.prompts),
        resource_templates=_own(capabilities.resource_templates),
    )


def discover_providers(capabilities: CapabilitySet) -> list[ProviderInfo]:
    seen: dict[str, ProviderInfo] = {}
    for item in capabilities:
        if item.provider_id not in seen:
            seen[item.provider_id] = item.provider
    return list(seen.values())


def group_by_provider(capabilities: CapabilitySet) -> dict[str, ProviderGroup]:
    return {
        provider.id: ProviderGroup(provider=provider, capabilities=filter_by_provider(capabilities, provider.id))
        for provider in discover_providers(capabilities)
    }


def compute_stats(capabilities: CapabilitySet) -> CapabilityStats:
    return CapabilityStats(
        tools=len(capabilities.tools),
        resources=len(capabilities.resources),
        prompts=len(capabilities.prompts),
        templates=len(capabilities.resource_templates),
        total=len(capabilities),
    )


def summarize(capabilities: CapabilitySet, total_providers: int) -> dict[str, Any]:
    providers = discover_providers(capabilities)
    tools_by_provider = {provider.id: 0 for provider in providers}
    resources_by_provider = {provider.id: 0 for provider in providers}
    for item in capabilities.tools:
        tools_by_provider[item.provider_id] += 1
    for item in capabilities.resources:
        resources_by_provider[item.provider_id] += 1

    stats = compute_stats(capabilities)
    return {
        "total_providers": total_providers,
        "providers_with_capabilities": len(providers),
        "total_tools": stats.tools,
        "total_resources": stats.resources,
        "total_prompts": stats.prompts,
        "total_resource_templates": stats.templates,
        "tools_by_provider": tools_by_provider,
        "resources_by_provider": resources_by_provider,
    }
