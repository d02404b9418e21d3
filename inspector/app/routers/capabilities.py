from typing import Any

from fastapi import APIRouter, Query

from inspector.app.services.aggregator import (
    ALL_PROVIDERS,
    CapabilitySet,
    compute_stats,
    discover_providers,
    group_by_provider,
    summarize,
)
from inspector.app.services.parameter_store import ItemId


def _sections(capabilities: CapabilitySet, scope: str) -> dict[str, list[dict[str, Any]]]:
    sections: dict[str, list[dict[str, Any]]] = {}
    for key, items in (
        ("tools", capabilities.tools),
        ("resources", capabilities.resources),
        ("prompts", capabilities.prompts),
        ("resource_templates", capabilities.resource_templates),
    ):
        sections[key] = [
            {"item_id": ItemId(item.kind, index).key, "scope": scope, **item.to_public()}
            for index, item in enumerate(items)
        ]
    return sections


def create_capabilities_router(inspector_session, provider_runtime) -> APIRouter:
    router = APIRouter()

    @router.get(
        "/capabilities",
        summary="List Capabilities",
        description="Aggregated capabilities of all connected providers, optionally filtered to one provider "
        "or grouped per provider. Item ids are positions within the returned scope.",
    )
    def list_capabilities(
        provider: str = Query(default=ALL_PROVIDERS),
        view: str = Query(default="unified", pattern="^(unified|grouped)$"),
    ) -> dict[str, Any]:
        catalog = inspector_session.catalog
        scoped = inspector_session.view(provider)
        response: dict[str, Any] = {
            "provider": provider,
            "view": view,
            "revision": catalog.revision,
            "providers": [info.model_dump() for info in discover_providers(catalog)],
            "stats": compute_stats(scoped).as_dict(),
        }

        if view == "grouped":
            response["groups"] = [
                {
                    "provider": group.provider.model_dump(),
                    "stats": compute_stats(group.capabilities).as_dict(),
                    **_sections(group.capabilities, provider_id),
                }
                for provider_id, group in group_by_provider(scoped).items()
            ]
        else:
            response.update(_sections(scoped, provider))
        return response

    @router.get(
        "/capabilities/stats",
        summary="Get Capability Stats",
        description="Per-kind counts for the selected provider scope.",
    )
    def get_capability_stats(provider: str = Query(default=ALL_PROVIDERS)) -> dict[str, int]:
        return compute_stats(inspector_session.view(provider)).as_dict()

    @router.get(
        "/capabilities/summary",
        summary="Get Capability Summary",
        description="Aggregated totals plus tool and resource counts per provider.",
    )
    def get_capability_summary() -> dict[str, Any]:
        return summarize(inspector_session.catalog, total_providers=len(provider_runtime.connections()))

    return router
