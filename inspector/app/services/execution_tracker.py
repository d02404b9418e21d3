from __future__ import annotations

import datetime
import itertools
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from inspector.app.schemas.capabilities import CapabilityKind


class OutcomeStatus(str, Enum):
    TESTING = "testing"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_STATUSES = {OutcomeStatus.SUCCESS, OutcomeStatus.ERROR}


class UnknownAttemptError(LookupError):
    pass


class AttemptAlreadySettledError(RuntimeError):
    pass


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class TestOutcome:
    __test__ = False  # not a pytest test class

    attempt_id: str
    kind: CapabilityKind
    name: str
    provider_name: str | None = None
    status: OutcomeStatus = OutcomeStatus.TESTING
    arguments: dict[str, Any] | None = None
    result: Any = None
    error: str | None = None
    timestamp: datetime.datetime = field(default_factory=utc_now)
    started_at: datetime.datetime = field(default_factory=utc_now)
    duration_ms: int | None = None
    sequence: int = 0

    @property
    def settled(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_public(self) -> dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "type": self.kind.value,
            "name": self.name,
            "provider_name": self.provider_name,
            "status": self.status.value,
            "arguments": self.arguments,
            "result": self.result,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
        }


class TestExecutionTracker:
    """Outcome log of capability test attempts, one record per attempt."""

    __test__ = False

    def __init__(self) -> None:
        self._outcomes: dict[str, TestOutcome] = {}
        self._sequence = itertools.count(1)

    def begin(
        self,
        kind: CapabilityKind,
        name: str,
        provider_name: str | None = None,
        arguments: dict[str, Any] | None = None,
    ) -> str:
        attempt_id = uuid.uuid4().hex
        now = utc_now()
        self._outcomes[attempt_id] = TestOutcome(
            attempt_id=attempt_id,
            kind=kind,
            name=name,
            provider_name=provider_name,
            arguments=dict(arguments) if arguments is not None else None,
            timestamp=now,
            started_at=now,
            sequence=next(self._sequence),
        )
        return attempt_id

    def complete(
        self,
        attempt_id: str,
        status: OutcomeStatus,
        *,
        result: Any = None,
        error: str | None = None,
    ) -> TestOutcome:
        outcome = self.get(attempt_id)
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Attempts can only complete as success or error, not '{status.value}'")
        if outcome.settled:
            raise AttemptAlreadySettledError(
                f"Attempt '{attempt_id}' already completed with status '{outcome.status.value}'"
            )

        finished = utc_now()
        outcome.status = status
        outcome.result = result if status is OutcomeStatus.SUCCESS else None
        outcome.error = error if status is OutcomeStatus.ERROR else None
        outcome.timestamp = finished
        outcome.duration_ms = int((finished - outcome.started_at).total_seconds() * 1000)
        return outcome

    def get(self, attempt_id: str) -> TestOutcome:
        try:
            return self._outcomes[attempt_id]
        except KeyError:
            raise UnknownAttemptError(f"Unknown test attempt '{attempt_id}'") from None

    def outcomes(self) -> list[TestOutcome]:
        return sorted(self._outcomes.values(), key=lambda item: (item.timestamp, item.sequence), reverse=True)

    def latest_error(
        self,
        name: str,
        provider_name: str | None = None,
        kind: CapabilityKind | None = None,
    ) -> TestOutcome | None:
        for outcome in self.outcomes():
            if outcome.status is not OutcomeStatus.ERROR or outcome.name != name:
                continue
            if kind is not None and outcome.kind is not kind:
                continue
            if provider_name is not None and outcome.provider_name != provider_name:
                continue
            return outcome
        return None

    def clear(self) -> int:
        count = len(self._outcomes)
        self._outcomes.clear()
        return count

    def __len__(self) -> int:
        return len(self._outcomes)
