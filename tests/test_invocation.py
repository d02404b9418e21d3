import asyncio

import pytest

from inspector.app.schemas.capabilities import CapabilityKind
from inspector.app.services.aggregator import ProviderListing
from inspector.app.services.execution_tracker import OutcomeStatus
from inspector.app.services.parameter_store import ItemId
from inspector.app.services.session import InspectorSession, UnknownItemError
from inspector.app.services.validation import InvocationBlockedError

from fakes import FILES, WEATHER, files_listing, weather_listing


TOOL_0 = ItemId(CapabilityKind.TOOL, 0)
PROMPT_0 = ItemId(CapabilityKind.PROMPT, 0)
RESOURCE_0 = ItemId(CapabilityKind.RESOURCE, 0)
TEMPLATE_0 = ItemId(CapabilityKind.TEMPLATE, 0)


@pytest.fixture
def session(backend):
    session = InspectorSession(backend)
    session.refresh()
    return session


class TestToolInvocation:
    """Gate, sanitize and dispatch of tool tests."""

    def test_payload_is_sanitized(self, session, backend):
        session.expand("all", TOOL_0)
        session.set_value("all", TOOL_0, "city", "Oslo")

        outcome = asyncio.run(session.test("all", TOOL_0))

        assert outcome.status is OutcomeStatus.SUCCESS
        assert outcome.result == "forecast ok"
        assert backend.calls == [("tool", (WEATHER.id, "forecast", {"city": "Oslo", "days": 3, "units": "metric"}))]

    def test_empty_required_value_reaches_provider(self, session, backend):
        session.expand("all", TOOL_0)
        asyncio.run(session.test("all", TOOL_0))
        assert backend.calls[0][1][2]["city"] == ""

    def test_unexpanded_tool_sends_empty_payload(self, session, backend):
        asyncio.run(session.test("all", ItemId(CapabilityKind.TOOL, 1)))
        assert backend.calls == [("tool", (WEATHER.id, "alerts", {}))]

    def test_provider_error_recorded_then_raised(self, session, backend):
        backend.failures["forecast"] = RuntimeError("upstream exploded")
        session.expand("all", TOOL_0)

        with pytest.raises(RuntimeError, match="upstream exploded"):
            asyncio.run(session.test("all", TOOL_0))

        [outcome] = session.tracker.outcomes()
        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.error == "upstream exploded"
        assert session.describe("all", TOOL_0)["latest_error"] == "upstream exploded"


class TestPromptAndResourceInvocation:
    def test_prompt_blocked_until_filled(self, session, backend):
        session.expand("all", PROMPT_0)
        with pytest.raises(InvocationBlockedError) as exc_info:
            asyncio.run(session.test("all", PROMPT_0))
        assert exc_info.value.missing == ["q"]
        assert backend.calls == []
        assert len(session.tracker) == 0

        session.set_value("all", PROMPT_0, "q", "weather today")
        outcome = asyncio.run(session.test("all", PROMPT_0))
        assert outcome.result == "prompt summarize"
        assert backend.calls == [("prompt", (WEATHER.id, "summarize", {"q": "weather today"}))]

    def test_resource_read_by_uri(self, session, backend):
        outcome = asyncio.run(session.test("all", RESOURCE_0))
        assert outcome.kind is CapabilityKind.RESOURCE
        assert outcome.result == "contents of file:///README.md"
        assert backend.calls == [("resource", (FILES.id, "file:///README.md"))]

    def test_template_filled_before_read(self, session, backend):
        session.expand("all", TEMPLATE_0)
        session.set_value("all", TEMPLATE_0, "user", "ann")
        assert session.describe("all", TEMPLATE_0)["preview_uri"] == "file:///users/ann/{path}"

        with pytest.raises(InvocationBlockedError):
            asyncio.run(session.test("all", TEMPLATE_0))

        session.set_value("all", TEMPLATE_0, "path", "notes.txt")
        asyncio.run(session.test("all", TEMPLATE_0))
        assert backend.calls == [("resource", (FILES.id, "file:///users/ann/notes.txt"))]


class TestConcurrentAttempts:
    def test_two_attempts_same_tool(self, session, backend):
        session.expand("all", TOOL_0)
        session.set_value("all", TOOL_0, "city", "Oslo")

        async def main():
            return await asyncio.gather(session.test("all", TOOL_0), session.test("all", TOOL_0))

        first, second = asyncio.run(main())
        assert first.attempt_id != second.attempt_id
        assert {first.status, second.status} == {OutcomeStatus.SUCCESS}
        assert len(session.tracker) == 2


class TestSessionScopes:
    """Item identity is positional within a view scope."""

    def test_scoped_positions(self, session):
        scoped = ItemId(CapabilityKind.RESOURCE, 0)
        assert session.resolve_item(FILES.id, scoped).name == "readme"
        with pytest.raises(UnknownItemError):
            session.resolve_item(WEATHER.id, scoped)

    def test_scopes_keep_separate_state(self, session):
        session.expand("all", TOOL_0)
        session.set_value("all", TOOL_0, "city", "Oslo")
        session.expand(WEATHER.id, TOOL_0)
        assert session.store(WEATHER.id).get(TOOL_0)["city"] == ""

    def test_refresh_drops_state(self, session, backend):
        session.expand("all", TOOL_0)
        session.set_value("all", TOOL_0, "city", "Oslo")

        backend.set_listings([files_listing(), weather_listing()])
        session.refresh()

        assert session.store("all").get(TOOL_0) == {}
        assert session.describe("all", TOOL_0)["expanded"] is False

    def test_cleanup_across_scopes(self, session):
        session.expand("all", TOOL_0)
        session.collapse("all", TOOL_0)
        session.expand(WEATHER.id, PROMPT_0)
        session.collapse(WEATHER.id, PROMPT_0)
        assert session.cleanup() == 2
        assert session.store("all").get(TOOL_0) == {"days": 3, "units": "metric"}
        assert session.store(WEATHER.id).has_state(PROMPT_0) is False

    def test_cleanup_leaves_open_forms_alone(self, session, backend):
        session.expand("all", TOOL_0)
        before = session.describe("all", TOOL_0)

        assert session.cleanup() == 0
        assert before["state"] == {"city": "", "days": 3, "units": "metric"}
        assert session.describe("all", TOOL_0)["state"] == before["state"]

        asyncio.run(session.test("all", TOOL_0))
        assert backend.calls[0][1][2]["city"] == ""

    def test_latest_error_is_per_kind(self, session, backend):
        backend.set_listings(
            [
                ProviderListing(
                    provider=WEATHER,
                    tools=[{"name": "report"}],
                    prompts=[{"name": "report", "arguments": []}],
                )
            ]
        )
        session.refresh()
        backend.failures["report"] = RuntimeError("tool broke")

        with pytest.raises(RuntimeError):
            asyncio.run(session.test("all", TOOL_0))

        assert session.describe("all", TOOL_0)["latest_error"] == "tool broke"
        assert session.describe("all", PROMPT_0)["latest_error"] is None

    def test_describe_fields(self, session):
        details = session.describe("all", TOOL_0)
        assert [field["name"] for field in details["fields"]] == ["city", "days", "units"]
        assert details["can_invoke"] is True
        assert "preview_uri" not in details
