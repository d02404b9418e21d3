from __future__ import annotations

from typing import Any, Mapping

from inspector.app.schemas.capabilities import (
    CapabilityDefinition,
    PromptDefinition,
    ResourceTemplateDefinition,
)
from inspector.app.services.arguments import required_prompt_arguments
from inspector.app.services.extraction import extract_template_params


class InvocationBlockedError(ValueError):
    """Required parameters are missing; the capability must not be invoked."""

    def __init__(self, name: str, missing: list[str]) -> None:
        self.name = name
        self.missing = missing
        super().__init__(f"Cannot invoke '{name}': missing required parameters: {', '.join(missing)}")


def is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return str(value).strip() != ""


def required_parameters(definition: CapabilityDefinition) -> list[str]:
    """Names the gate checks before invocation; tools and resources have none."""
    if isinstance(definition, ResourceTemplateDefinition):
        return list(dict.fromkeys(extract_template_params(definition.uri_template)))
    if isinstance(definition, PromptDefinition):
        return required_prompt_arguments(definition)
    return []


def missing_parameters(definition: CapabilityDefinition, state: Mapping[str, Any]) -> list[str]:
    return [name for name in required_parameters(definition) if not is_filled(state.get(name))]


def can_invoke(definition: CapabilityDefinition, state: Mapping[str, Any]) -> bool:
    return not missing_parameters(definition, state)


def ensure_invocable(definition: CapabilityDefinition, state: Mapping[str, Any]) -> None:
    missing = missing_parameters(definition, state)
    if missing:
        raise InvocationBlockedError(definition.name, missing)
