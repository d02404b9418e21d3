from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from inspector.app.schemas.capabilities import (
    CapabilityDefinition,
    PromptDefinition,
    ResourceTemplateDefinition,
    ToolDefinition,
)
from inspector.app.services.extraction import extract_template_params
from inspector.app.services.schema_resolver import (
    ResolvedType,
    required_names,
    resolve_type,
    schema_properties,
)


_DESCRIPTOR_KEYS = {"name", "required"}


@dataclass(frozen=True)
class ArgumentDescriptor:
    """Canonical form of one prompt argument, whatever shape the provider sent."""

    name: str
    required: bool
    schema: dict[str, Any] = field(default_factory=dict)

    def resolve(self) -> ResolvedType:
        return resolve_type(self.schema, required=self.required)


def normalize_prompt_arguments(prompt: PromptDefinition) -> list[ArgumentDescriptor]:
    arguments = prompt.arguments
    if isinstance(arguments, list):
        descriptors: list[ArgumentDescriptor] = []
        for item in arguments:
            if not isinstance(item, Mapping) or not isinstance(item.get("name"), str):
                continue
            descriptors.append(
                ArgumentDescriptor(
                    name=item["name"],
                    # MCP leaves `required` optional; only an explicit false opts out.
                    required=item.get("required") is not False,
                    schema={key: value for key, value in item.items() if key not in _DESCRIPTOR_KEYS},
                )
            )
        return descriptors

    if isinstance(arguments, Mapping):
        return [
            ArgumentDescriptor(
                name=str(name),
                required=True,
                schema=dict(definition) if isinstance(definition, Mapping) else {},
            )
            for name, definition in arguments.items()
        ]

    if prompt.input_schema is not None:
        required = set(required_names(prompt.input_schema))
        return [
            ArgumentDescriptor(
                name=name,
                required=name in required,
                schema=dict(definition) if isinstance(definition, Mapping) else {},
            )
            for name, definition in schema_properties(prompt.input_schema).items()
        ]

    return []


def required_prompt_arguments(prompt: PromptDefinition) -> list[str]:
    return [descriptor.name for descriptor in normalize_prompt_arguments(prompt) if descriptor.required]


def parameter_schema(definition: CapabilityDefinition) -> dict[str, Any]:
    """Object schema describing the parameters a capability accepts.

    Tools carry one already; prompts and templates get one synthesized so a
    single sanitization policy applies to every kind.
    """
    if isinstance(definition, ToolDefinition):
        return dict(definition.input_schema or {})

    if isinstance(definition, PromptDefinition):
        descriptors = normalize_prompt_arguments(definition)
        return {
            "type": "object",
            "properties": {descriptor.name: descriptor.schema for descriptor in descriptors},
            "required": [descriptor.name for descriptor in descriptors if descriptor.required],
        }

    if isinstance(definition, ResourceTemplateDefinition):
        names = extract_template_params(definition.uri_template)
        return {
            "type": "object",
            "properties": {name: {"type": "string"} for name in names},
            "required": list(dict.fromkeys(names)),
        }

    return {"type": "object", "properties": {}}


def describe_inputs(definition: CapabilityDefinition) -> list[dict[str, Any]]:
    """Form-field descriptions for every parameter of ``definition``."""
    fields: list[dict[str, Any]] = []

    if isinstance(definition, PromptDefinition):
        entries = [
            (descriptor.name, descriptor.schema, descriptor.resolve())
            for descriptor in normalize_prompt_arguments(definition)
        ]
    else:
        schema = parameter_schema(definition)
        required = set(required_names(schema))
        entries = [
            (name, prop, resolve_type(prop, required=name in required))
            for name, prop in schema_properties(schema).items()
        ]

    for name, prop, resolved in entries:
        title = prop.get("title") if isinstance(prop, Mapping) else None
        description = prop.get("description") if isinstance(prop, Mapping) else None
        fields.append(
            {
                "name": name,
                "title": title if isinstance(title, str) and title else name,
                "description": description if isinstance(description, str) else "",
                "type": resolved.effective_type,
                "optional": resolved.is_optional,
                "nullable": resolved.nullable,
                "default": resolved.default if resolved.has_default else None,
                "has_default": resolved.has_default,
                "choices": list(resolved.choices),
                "minimum": resolved.minimum,
                "maximum": resolved.maximum,
            }
        )
    return fields
