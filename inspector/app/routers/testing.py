from typing import Any

from fastapi import APIRouter, HTTPException, Query

from inspector.app.routers.parameters import parse_item_id
from inspector.app.services.aggregator import ALL_PROVIDERS
from inspector.app.services.execution_tracker import UnknownAttemptError
from inspector.app.services.invocation import describe_error
from inspector.app.services.session import UnknownItemError
from inspector.app.services.validation import InvocationBlockedError


def create_testing_router(inspector_session) -> APIRouter:
    router = APIRouter()

    @router.post(
        "/tests/{item_id}",
        summary="Test Capability",
        description="Validate, sanitize and invoke a capability with its current parameters; "
        "the attempt is recorded whether it succeeds or fails.",
    )
    async def run_test(item_id: str, scope: str = Query(default=ALL_PROVIDERS)) -> dict[str, Any]:
        parsed = parse_item_id(item_id)
        try:
            capability, attempt_id, payload = inspector_session.start_test(scope, parsed)
        except UnknownItemError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except InvocationBlockedError as exc:
            raise HTTPException(status_code=422, detail={"message": str(exc), "missing": exc.missing}) from exc

        try:
            outcome = await inspector_session.tester.finish(capability, attempt_id, payload)
        except Exception as exc:
            raise HTTPException(
                status_code=502,
                detail={"message": describe_error(exc), "attempt_id": attempt_id},
            ) from exc
        return outcome.to_public()

    @router.get(
        "/tests",
        summary="List Test Results",
        description="All recorded test attempts, newest first.",
    )
    async def list_tests() -> dict[str, Any]:
        outcomes = inspector_session.tracker.outcomes()
        return {"results": [outcome.to_public() for outcome in outcomes], "count": len(outcomes)}

    @router.get(
        "/tests/{attempt_id}",
        summary="Get Test Result",
        description="One recorded test attempt by id.",
    )
    def get_test(attempt_id: str) -> dict[str, Any]:
        try:
            return inspector_session.tracker.get(attempt_id).to_public()
        except UnknownAttemptError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @router.delete(
        "/tests",
        summary="Clear Test Results",
        description="Forget every recorded test attempt.",
    )
    async def clear_tests() -> dict[str, int]:
        return {"cleared": inspector_session.tracker.clear()}

    return router
