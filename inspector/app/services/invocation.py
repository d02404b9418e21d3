from __future__ import annotations

from typing import Any, Protocol

from inspector.app.core.logger import get_logger, payload_keys
from inspector.app.schemas.capabilities import (
    AttributedCapability,
    CapabilityKind,
    PromptDefinition,
    ResourceDefinition,
    ResourceTemplateDefinition,
)
from inspector.app.services.arguments import parameter_schema
from inspector.app.services.execution_tracker import OutcomeStatus, TestExecutionTracker, TestOutcome
from inspector.app.services.extraction import (
    extract_prompt_text,
    extract_resource_text,
    extract_tool_display,
    generate_preview_uri,
)
from inspector.app.services.sanitizer import sanitize
from inspector.app.services.validation import ensure_invocable


logger = get_logger(__name__)


class InvocationBackend(Protocol):
    async def invoke_tool(self, tool: AttributedCapability, payload: dict[str, Any]) -> Any: ...

    async def read_resource(self, provider_id: str, uri: str) -> Any: ...

    async def get_prompt(self, provider_id: str, name: str, arguments: dict[str, Any]) -> Any: ...


def describe_error(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__


class CapabilityTester:
    """Gate, sanitize, invoke and record one capability test attempt."""

    def __init__(self, backend: InvocationBackend, tracker: TestExecutionTracker) -> None:
        self.backend = backend
        self.tracker = tracker

    def prepare(self, capability: AttributedCapability, state: dict[str, Any]) -> dict[str, Any]:
        """Validate and sanitize ``state`` into the invocation payload.

        Raises ``InvocationBlockedError`` before anything reaches the provider.
        """
        definition = capability.definition
        ensure_invocable(definition, state)
        if isinstance(definition, ResourceDefinition):
            return {}
        return sanitize(state, parameter_schema(definition))

    async def _dispatch(self, capability: AttributedCapability, payload: dict[str, Any]) -> str:
        definition = capability.definition
        if capability.kind is CapabilityKind.TOOL:
            raw = await self.backend.invoke_tool(capability, payload)
            return extract_tool_display(raw)
        if isinstance(definition, ResourceDefinition):
            raw = await self.backend.read_resource(capability.provider_id, definition.uri)
            return extract_resource_text(raw)
        if isinstance(definition, ResourceTemplateDefinition):
            uri = generate_preview_uri(definition.uri_template, payload)
            raw = await self.backend.read_resource(capability.provider_id, uri)
            return extract_resource_text(raw)
        if isinstance(definition, PromptDefinition):
            raw = await self.backend.get_prompt(capability.provider_id, definition.name, payload)
            return extract_prompt_text(raw)
        raise ValueError(f"Unsupported capability kind '{capability.kind.value}'")

    def start(self, capability: AttributedCapability, state: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Gate and sanitize, then open a ``testing`` record for the attempt."""
        payload = self.prepare(capability, state)
        attempt_id = self.tracker.begin(
            capability.kind,
            capability.name,
            provider_name=capability.provider_name,
            arguments=payload,
        )
        logger.info(
            "Testing %s '%s' on '%s' (attempt %s, args: %s)",
            capability.kind.value,
            capability.name,
            capability.provider_name,
            attempt_id,
            payload_keys(payload),
        )
        logger.debug("Attempt %s payload: %r", attempt_id, payload)
        return attempt_id, payload

    async def finish(self, capability: AttributedCapability, attempt_id: str, payload: dict[str, Any]) -> TestOutcome:
        """Invoke the provider and settle the attempt; provider errors propagate."""
        try:
            display = await self._dispatch(capability, payload)
        except Exception as exc:
            outcome = self.tracker.complete(attempt_id, OutcomeStatus.ERROR, error=describe_error(exc))
            logger.warning(
                "%s '%s' on '%s' failed (attempt %s): %s",
                capability.kind.value,
                capability.name,
                capability.provider_name,
                attempt_id,
                outcome.error,
            )
            raise

        outcome = self.tracker.complete(attempt_id, OutcomeStatus.SUCCESS, result=display)
        logger.info("Attempt %s succeeded in %sms", attempt_id, outcome.duration_ms)
        return outcome

    async def run(self, capability: AttributedCapability, state: dict[str, Any]) -> TestOutcome:
        attempt_id, payload = self.start(capability, state)
        return await self.finish(capability, attempt_id, payload)
