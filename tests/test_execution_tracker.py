import asyncio

import pytest

from inspector.app.schemas.capabilities import CapabilityKind
from inspector.app.services.execution_tracker import (
    AttemptAlreadySettledError,
    OutcomeStatus,
    TestExecutionTracker,
    UnknownAttemptError,
)


class TestTracker:
    """Lifecycle of test attempts."""

    def test_begin_records_testing(self):
        tracker = TestExecutionTracker()
        attempt_id = tracker.begin(CapabilityKind.TOOL, "echo", provider_name="p", arguments={"a": 1})
        outcome = tracker.get(attempt_id)
        assert outcome.status is OutcomeStatus.TESTING
        assert outcome.arguments == {"a": 1}
        assert outcome.settled is False

    def test_complete_success_and_error(self):
        tracker = TestExecutionTracker()
        ok = tracker.begin(CapabilityKind.TOOL, "echo")
        bad = tracker.begin(CapabilityKind.TOOL, "echo")

        tracker.complete(ok, OutcomeStatus.SUCCESS, result="fine", error="ignored")
        tracker.complete(bad, OutcomeStatus.ERROR, result="ignored", error="boom")

        assert (tracker.get(ok).result, tracker.get(ok).error) == ("fine", None)
        assert (tracker.get(bad).result, tracker.get(bad).error) == (None, "boom")
        assert tracker.get(ok).duration_ms >= 0

    def test_terminal_status_is_final(self):
        tracker = TestExecutionTracker()
        attempt_id = tracker.begin(CapabilityKind.PROMPT, "ask")
        tracker.complete(attempt_id, OutcomeStatus.SUCCESS, result="x")
        with pytest.raises(AttemptAlreadySettledError):
            tracker.complete(attempt_id, OutcomeStatus.ERROR, error="late")
        assert tracker.get(attempt_id).status is OutcomeStatus.SUCCESS

    def test_testing_is_not_a_completion(self):
        tracker = TestExecutionTracker()
        attempt_id = tracker.begin(CapabilityKind.TOOL, "echo")
        with pytest.raises(ValueError):
            tracker.complete(attempt_id, OutcomeStatus.TESTING)

    def test_unknown_attempt(self):
        with pytest.raises(UnknownAttemptError):
            TestExecutionTracker().get("missing")

    def test_outcomes_newest_first_and_clear(self):
        tracker = TestExecutionTracker()
        first = tracker.begin(CapabilityKind.TOOL, "a")
        second = tracker.begin(CapabilityKind.TOOL, "b")
        assert [outcome.attempt_id for outcome in tracker.outcomes()] == [second, first]

        assert tracker.clear() == 2
        assert len(tracker) == 0

    def test_latest_error_per_provider(self):
        tracker = TestExecutionTracker()
        one = tracker.begin(CapabilityKind.TOOL, "echo", provider_name="p1")
        two = tracker.begin(CapabilityKind.TOOL, "echo", provider_name="p2")
        tracker.complete(one, OutcomeStatus.ERROR, error="p1 failed")
        tracker.complete(two, OutcomeStatus.SUCCESS, result="ok")

        assert tracker.latest_error("echo", "p1").error == "p1 failed"
        assert tracker.latest_error("echo", "p2") is None
        assert tracker.latest_error("other") is None

    def test_latest_error_per_kind(self):
        tracker = TestExecutionTracker()
        tool = tracker.begin(CapabilityKind.TOOL, "echo", provider_name="p")
        prompt = tracker.begin(CapabilityKind.PROMPT, "echo", provider_name="p")
        tracker.complete(tool, OutcomeStatus.ERROR, error="tool failed")
        tracker.complete(prompt, OutcomeStatus.SUCCESS, result="ok")

        assert tracker.latest_error("echo", "p", CapabilityKind.TOOL).error == "tool failed"
        assert tracker.latest_error("echo", "p", CapabilityKind.PROMPT) is None
        assert tracker.latest_error("echo", "p").error == "tool failed"

    def test_concurrent_attempts_stay_independent(self):
        tracker = TestExecutionTracker()

        async def attempt(status, delay):
            attempt_id = tracker.begin(CapabilityKind.TOOL, "echo")
            await asyncio.sleep(delay)
            if status is OutcomeStatus.SUCCESS:
                tracker.complete(attempt_id, status, result="done")
            else:
                tracker.complete(attempt_id, status, error="failed")
            return attempt_id

        async def main():
            return await asyncio.gather(
                attempt(OutcomeStatus.ERROR, 0.02),
                attempt(OutcomeStatus.SUCCESS, 0.0),
            )

        failed_id, ok_id = asyncio.run(main())
        assert failed_id != ok_id
        assert tracker.get(failed_id).status is OutcomeStatus.ERROR
        assert tracker.get(ok_id).status is OutcomeStatus.SUCCESS
        assert tracker.get(ok_id).result == "done"

    def test_public_view(self):
        tracker = TestExecutionTracker()
        attempt_id = tracker.begin(CapabilityKind.TEMPLATE, "file", provider_name="files")
        public = tracker.get(attempt_id).to_public()
        assert public["type"] == "template"
        assert public["status"] == "testing"
        assert public["provider_name"] == "files"
        assert isinstance(public["timestamp"], str)
