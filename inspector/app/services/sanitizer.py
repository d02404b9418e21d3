from __future__ import annotations

from typing import Any, Mapping

from inspector.app.services.schema_resolver import required_names, resolve_type, schema_properties


def _is_empty(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def sanitize(state: Mapping[str, Any], schema: Any) -> dict[str, Any]:
    """Reduce raw form state to the payload sent to the provider.

    Nulls are always dropped. Empty strings and empty lists are dropped only
    for optional properties; an empty required value is passed through for the
    provider to reject. Values are never coerced here.
    """
    properties = schema_properties(schema)
    required = set(required_names(schema))
    payload: dict[str, Any] = {}

    for key, value in state.items():
        if value is None:
            continue
        if _is_empty(value) and resolve_type(properties.get(key), required=key in required).is_optional:
            continue
        payload[key] = value

    return payload
