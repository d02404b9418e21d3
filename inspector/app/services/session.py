from __future__ import annotations

from typing import Any, Protocol

from inspector.app.core.logger import get_logger
from inspector.app.schemas.capabilities import AttributedCapability, ResourceTemplateDefinition
from inspector.app.services.aggregator import (
    ALL_PROVIDERS,
    CapabilitySet,
    ProviderListing,
    aggregate,
    filter_by_provider,
)
from inspector.app.services.arguments import describe_inputs
from inspector.app.services.execution_tracker import TestExecutionTracker, TestOutcome
from inspector.app.services.extraction import generate_preview_uri
from inspector.app.services.invocation import CapabilityTester, InvocationBackend
from inspector.app.services.parameter_store import ItemId, ParameterState, ParameterStateStore
from inspector.app.services.validation import missing_parameters


logger = get_logger(__name__)


class CapabilitySource(InvocationBackend, Protocol):
    def listings(self) -> list[ProviderListing]: ...


class UnknownItemError(LookupError):
    pass


class InspectorSession:
    """Operator-facing state: the aggregated catalog, form state and test log.

    Parameter state is kept per view scope ("all" or one provider id), the
    same way each rendered capability list owns its own forms.
    """

    def __init__(self, source: CapabilitySource, tracker: TestExecutionTracker | None = None) -> None:
        self.source = source
        self.tracker = tracker or TestExecutionTracker()
        self.tester = CapabilityTester(source, self.tracker)
        self.catalog = CapabilitySet()
        self._stores: dict[str, ParameterStateStore] = {}

    def refresh(self) -> CapabilitySet:
        """Re-derive the catalog from the provider listings under a new revision."""
        listings = self.source.listings()
        self.catalog = aggregate(listings, revision=self.catalog.revision + 1)
        logger.info(
            "Catalog revision %s: %s capabilities from %s listings",
            self.catalog.revision,
            len(self.catalog),
            len(listings),
        )
        return self.catalog

    def view(self, scope: str = ALL_PROVIDERS) -> CapabilitySet:
        return filter_by_provider(self.catalog, scope)

    def store(self, scope: str = ALL_PROVIDERS) -> ParameterStateStore:
        store = self._stores.setdefault(scope, ParameterStateStore())
        store.bind(self.catalog.revision)
        return store

    def resolve_item(self, scope: str, item_id: ItemId) -> AttributedCapability:
        items = self.view(scope).section(item_id.section)
        if item_id.index < 0 or item_id.index >= len(items):
            raise UnknownItemError(f"No {item_id.section.value} at position {item_id.index} in view '{scope}'")
        return items[item_id.index]

    def expand(self, scope: str, item_id: ItemId) -> ParameterState:
        capability = self.resolve_item(scope, item_id)
        return self.store(scope).expand(item_id, capability.definition)

    def collapse(self, scope: str, item_id: ItemId) -> None:
        self.resolve_item(scope, item_id)
        self.store(scope).collapse(item_id)

    def set_value(self, scope: str, item_id: ItemId, key: str, value: Any) -> ParameterState:
        self.resolve_item(scope, item_id)
        return self.store(scope).set_value(item_id, key, value)

    def cleanup(self) -> int:
        return sum(self.store(scope).cleanup() for scope in list(self._stores))

    def describe(self, scope: str, item_id: ItemId) -> dict[str, Any]:
        capability = self.resolve_item(scope, item_id)
        store = self.store(scope)
        state = store.get(item_id)
        missing = missing_parameters(capability.definition, state)
        details: dict[str, Any] = {
            "item_id": item_id.key,
            "scope": scope,
            "capability": capability.to_public(),
            "expanded": store.is_expanded(item_id),
            "state": state,
            "fields": describe_inputs(capability.definition),
            "can_invoke": not missing,
            "missing": missing,
        }
        if isinstance(capability.definition, ResourceTemplateDefinition):
            details["preview_uri"] = generate_preview_uri(capability.definition.uri_template, state)
        latest_error = self.tracker.latest_error(capability.name, capability.provider_name, capability.kind)
        details["latest_error"] = latest_error.error if latest_error else None
        return details

    def start_test(self, scope: str, item_id: ItemId) -> tuple[AttributedCapability, str, dict[str, Any]]:
        capability = self.resolve_item(scope, item_id)
        attempt_id, payload = self.tester.start(capability, self.store(scope).get(item_id))
        return capability, attempt_id, payload

    async def test(self, scope: str, item_id: ItemId) -> TestOutcome:
        capability = self.resolve_item(scope, item_id)
        return await self.tester.run(capability, self.store(scope).get(item_id))
