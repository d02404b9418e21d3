"""Turn raw provider responses into display text, and fill URI templates."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping


TEMPLATE_TOKEN = re.compile(r"\{([^}]+)\}")
TOOL_SUCCESS_FALLBACK = "Tool executed successfully"


def to_json_text(value: Any) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def extract_template_params(uri_template: str) -> list[str]:
    if not isinstance(uri_template, str):
        return []
    return TEMPLATE_TOKEN.findall(uri_template)


def generate_preview_uri(uri_template: str, params: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` tokens; tokens without a value stay literal.

    A remaining ``{`` in the output therefore signals incomplete substitution.
    """

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        value = params.get(key)
        if value is None or value == "":
            return match.group(0)
        return str(value)

    return TEMPLATE_TOKEN.sub(replace, uri_template)


def _content_part_text(part: Any) -> str:
    if isinstance(part, Mapping):
        if part.get("type") == "text" and isinstance(part.get("text"), str):
            return part["text"]
        if part.get("text"):
            return str(part["text"])
    return to_json_text(part)


def _join_content(parts: list[Any]) -> str:
    return "\n".join(_content_part_text(part) for part in parts)


def extract_tool_display(result: Any) -> str:
    if result is None:
        return TOOL_SUCCESS_FALLBACK
    if isinstance(result, str):
        return result
    if not isinstance(result, Mapping):
        return to_json_text(result)

    content = result.get("content")
    if isinstance(content, list):
        return _join_content(content)

    nested = result.get("result")
    if nested:
        if isinstance(nested, str):
            return nested
        if isinstance(nested, Mapping) and isinstance(nested.get("content"), list):
            return _join_content(nested["content"])
        return to_json_text(nested)

    return to_json_text(result)


def extract_resource_text(result: Any) -> str:
    if isinstance(result, Mapping):
        contents = result.get("contents")
        if isinstance(contents, list):
            rendered: list[str] = []
            for part in contents:
                if isinstance(part, Mapping) and part.get("text"):
                    rendered.append(str(part["text"]))
                elif isinstance(part, Mapping) and part.get("blob"):
                    rendered.append(f"[Binary content: {part.get('mimeType') or 'unknown type'}]")
                else:
                    rendered.append(json.dumps(part, default=str, ensure_ascii=False))
            return "\n\n".join(rendered)
        content = result.get("content")
        if content:
            return content if isinstance(content, str) else to_json_text(content)
    return to_json_text(result)


def _message_text(message: Any) -> str:
    if isinstance(message, Mapping):
        content = message.get("content")
        if isinstance(content, Mapping) and content.get("text"):
            return str(content["text"])
        if isinstance(content, str):
            return content
        return to_json_text(content or message)
    return to_json_text(message)


def extract_prompt_text(result: Any) -> str:
    if isinstance(result, Mapping):
        messages = result.get("messages")
        if isinstance(messages, list) and messages:
            return "\n\n".join(_message_text(message) for message in messages)
    return to_json_text(result)
