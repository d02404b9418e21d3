"""Resolve the effective shape of one JSON-Schema-like property definition.

Capability schemas arrive straight from remote providers and are frequently
loose: a property may carry ``type`` or only an ``anyOf`` union, ``enum`` may
be empty, ``required`` may be missing altogether. Everything here degrades to
a plain string property instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


DEFAULT_TYPE = "string"
NULL_TYPE = "null"


@dataclass(frozen=True)
class ResolvedType:
    effective_type: str
    nullable: bool = False
    required: bool | None = None
    has_default: bool = False
    default: Any = None
    choices: tuple[Any, ...] = field(default_factory=tuple)
    minimum: Any = None
    maximum: Any = None

    @property
    def is_optional(self) -> bool:
        if self.nullable:
            return True
        if self.required is None:
            # No required-list to consult: a default implies the value may be left out.
            return self.has_default
        return not self.required


def _member_type(member: Any) -> Any:
    if isinstance(member, Mapping):
        return member.get("type")
    return None


def resolve_type(prop: Any, required: bool | None = None) -> ResolvedType:
    """Resolve ``prop`` into a :class:`ResolvedType`.

    ``required`` is the property's membership in the owning schema's
    required-list, or ``None`` when the caller has no such list.
    """
    if not isinstance(prop, Mapping):
        return ResolvedType(effective_type=DEFAULT_TYPE, required=required)

    any_of = prop.get("anyOf")
    members = any_of if isinstance(any_of, list) else []
    nullable = any(_member_type(member) == NULL_TYPE for member in members)

    declared = prop.get("type")
    if isinstance(declared, str) and declared:
        effective_type = declared
    else:
        effective_type = DEFAULT_TYPE
        for member in members:
            member_type = _member_type(member)
            if isinstance(member_type, str) and member_type and member_type != NULL_TYPE:
                effective_type = member_type
                break

    enum = prop.get("enum")
    choices = tuple(enum) if isinstance(enum, list) and enum else ()

    return ResolvedType(
        effective_type=effective_type,
        nullable=nullable,
        required=required,
        has_default="default" in prop,
        default=prop.get("default"),
        choices=choices,
        minimum=prop.get("minimum"),
        maximum=prop.get("maximum"),
    )


def schema_properties(schema: Any) -> dict[str, Any]:
    if not isinstance(schema, Mapping):
        return {}
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return {}
    return {str(name): definition for name, definition in properties.items()}


def required_names(schema: Any) -> list[str]:
    if not isinstance(schema, Mapping):
        return []
    required = schema.get("required")
    if not isinstance(required, list):
        return []
    return [item for item in required if isinstance(item, str)]


def resolve_schema_property(schema: Any, name: str) -> ResolvedType:
    """Resolve a named property of an object schema against its required-list."""
    prop = schema_properties(schema).get(name)
    return resolve_type(prop, required=name in required_names(schema))
