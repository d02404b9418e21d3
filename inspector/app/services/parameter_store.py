"""Per-item parameter state for the capability test forms.

State is keyed by :class:`ItemId` -- the capability's section plus its position
in the displayed list -- and only exists for items the operator has expanded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from inspector.app.core.logger import get_logger
from inspector.app.schemas.capabilities import (
    CapabilityDefinition,
    CapabilityKind,
    PromptDefinition,
    ResourceTemplateDefinition,
    ToolDefinition,
)
from inspector.app.services.arguments import normalize_prompt_arguments
from inspector.app.services.extraction import extract_template_params
from inspector.app.services.schema_resolver import (
    ResolvedType,
    required_names,
    resolve_type,
    schema_properties,
)


logger = get_logger(__name__)

ParameterState = dict[str, Any]


# Item sections share their names with capability kinds.
Section = CapabilityKind


@dataclass(frozen=True, order=True)
class ItemId:
    section: Section
    index: int

    @property
    def key(self) -> str:
        return f"{self.section.value}-{self.index}"

    @classmethod
    def parse(cls, raw: str) -> "ItemId":
        section, sep, index = raw.rpartition("-")
        if not sep or not index.isdigit():
            raise ValueError(f"Malformed item id '{raw}'; expected '<section>-<index>'")
        try:
            return cls(Section(section), int(index))
        except ValueError as exc:
            raise ValueError(f"Unknown section '{section}' in item id '{raw}'") from exc

    def __str__(self) -> str:
        return self.key


def seed_value(resolved: ResolvedType) -> Any:
    if resolved.has_default:
        return resolved.default

    optional = resolved.is_optional
    kind = resolved.effective_type
    if kind == "boolean":
        return None if optional else False
    if kind in ("integer", "number"):
        if optional:
            return None
        return resolved.minimum if resolved.minimum is not None else 0
    if kind == "array":
        return None if optional else []
    # string, and anything we don't recognize
    if optional:
        return None
    if resolved.choices:
        return resolved.choices[0]
    return ""


def initialize(definition: CapabilityDefinition) -> ParameterState:
    """Synthesize the initial parameter values for one capability."""
    if isinstance(definition, ToolDefinition):
        schema = definition.input_schema or {}
        required = set(required_names(schema))
        return {
            name: seed_value(resolve_type(prop, required=name in required))
            for name, prop in schema_properties(schema).items()
        }

    if isinstance(definition, ResourceTemplateDefinition):
        return {name: "" for name in extract_template_params(definition.uri_template)}

    if isinstance(definition, PromptDefinition):
        return {
            descriptor.name: seed_value(descriptor.resolve())
            for descriptor in normalize_prompt_arguments(definition)
        }

    return {}


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


class ParameterStateStore:
    def __init__(self, revision: int | None = None) -> None:
        self._revision = revision
        self._states: dict[ItemId, ParameterState] = {}
        self._expanded: set[ItemId] = set()

    @property
    def revision(self) -> int | None:
        return self._revision

    def bind(self, revision: int) -> bool:
        """Attach the store to a capability-set revision, resetting on change."""
        if self._revision == revision:
            return False
        if self._revision is not None:
            logger.info("Capability set changed (revision %s -> %s); dropping parameter state", self._revision, revision)
        self.reset()
        self._revision = revision
        return True

    def expand(self, item_id: ItemId, definition: CapabilityDefinition) -> ParameterState:
        self._expanded.add(item_id)
        if item_id not in self._states:
            self._states[item_id] = initialize(definition)
        return self.get(item_id)

    def collapse(self, item_id: ItemId) -> None:
        self._expanded.discard(item_id)

    def is_expanded(self, item_id: ItemId) -> bool:
        return item_id in self._expanded

    def has_state(self, item_id: ItemId) -> bool:
        return item_id in self._states

    def get(self, item_id: ItemId) -> ParameterState:
        return dict(self._states.get(item_id, {}))

    def set_value(self, item_id: ItemId, key: str, value: Any) -> ParameterState:
        current = self._states.setdefault(item_id, {})
        current[key] = value
        return dict(current)

    def cleanup(self) -> int:
        """Prune blank values and items left empty; returns entries removed.

        Expanded items are being edited and are left as they are.
        """
        removed = 0
        for item_id in list(self._states):
            if item_id in self._expanded:
                continue
            params = self._states[item_id]
            kept = {key: value for key, value in params.items() if not _is_blank(value)}
            removed += len(params) - len(kept)
            if kept:
                self._states[item_id] = kept
            else:
                del self._states[item_id]
        return removed

    def reset(self) -> None:
        self._states.clear()
        self._expanded.clear()

    def snapshot(self) -> dict[str, ParameterState]:
        return {item_id.key: dict(params) for item_id, params in sorted(self._states.items())}

    def __len__(self) -> int:
        return len(self._states)
