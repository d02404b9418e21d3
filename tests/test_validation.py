import pytest

from inspector.app.schemas.capabilities import (
    PromptDefinition,
    ResourceDefinition,
    ResourceTemplateDefinition,
    ToolDefinition,
)
from inspector.app.services.validation import (
    InvocationBlockedError,
    can_invoke,
    ensure_invocable,
    is_filled,
    missing_parameters,
    required_parameters,
)


PROMPT = PromptDefinition(name="ask", arguments=[{"name": "q", "required": True}])
TEMPLATE = ResourceTemplateDefinition(name="user file", uriTemplate="file:///users/{user}/{path}")


class TestIsFilled:
    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_empty_values(self, value):
        assert is_filled(value) is False

    @pytest.mark.parametrize("value", ["x", 0, False, [1]])
    def test_filled_values(self, value):
        assert is_filled(value) is True


class TestValidationGate:
    """Required-parameter checks that block invocation."""

    def test_prompt_required_argument(self):
        assert can_invoke(PROMPT, {"q": ""}) is False
        assert can_invoke(PROMPT, {"q": "hi"}) is True

    def test_prompt_optional_argument_ignored(self):
        prompt = PromptDefinition(name="p", arguments=[{"name": "lang", "required": False}])
        assert required_parameters(prompt) == []
        assert can_invoke(prompt, {}) is True

    def test_prompt_missing_required_flag_counts_as_required(self):
        prompt = PromptDefinition(name="p", arguments=[{"name": "q"}])
        assert required_parameters(prompt) == ["q"]

    def test_template_every_placeholder_required(self):
        assert missing_parameters(TEMPLATE, {"user": "ann"}) == ["path"]
        assert can_invoke(TEMPLATE, {"user": "ann", "path": "a.txt"}) is True

    def test_tools_and_resources_never_blocked(self):
        tool = ToolDefinition(
            name="t",
            inputSchema={"properties": {"a": {"type": "string"}}, "required": ["a"]},
        )
        assert can_invoke(tool, {}) is True
        assert can_invoke(ResourceDefinition(name="r", uri="file:///a"), {}) is True

    def test_ensure_invocable_reports_missing(self):
        with pytest.raises(InvocationBlockedError) as exc_info:
            ensure_invocable(TEMPLATE, {"user": " ", "path": None})
        assert exc_info.value.missing == ["user", "path"]
        assert "user, path" in str(exc_info.value)
