from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from inspector.app.services.aggregator import ALL_PROVIDERS
from inspector.app.services.parameter_store import ItemId
from inspector.app.services.session import UnknownItemError


class ParameterUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str
    value: Any = None


def parse_item_id(raw: str) -> ItemId:
    try:
        return ItemId.parse(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_parameters_router(inspector_session) -> APIRouter:
    router = APIRouter()

    def _describe(scope: str, item_id: ItemId) -> dict[str, Any]:
        try:
            return inspector_session.describe(scope, item_id)
        except UnknownItemError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @router.post(
        "/parameters/cleanup",
        summary="Clean Up Parameters",
        description="Drop blank values and empty entries from every parameter store.",
    )
    async def cleanup_parameters() -> dict[str, int]:
        return {"removed": inspector_session.cleanup()}

    @router.post(
        "/parameters/{item_id}/expand",
        summary="Expand Item",
        description="Open the parameter form of a capability, seeding defaults on first expansion.",
    )
    async def expand_item(item_id: str, scope: str = Query(default=ALL_PROVIDERS)) -> dict[str, Any]:
        parsed = parse_item_id(item_id)
        try:
            inspector_session.expand(scope, parsed)
        except UnknownItemError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _describe(scope, parsed)

    @router.post(
        "/parameters/{item_id}/collapse",
        summary="Collapse Item",
        description="Close the parameter form; entered values are kept.",
    )
    async def collapse_item(item_id: str, scope: str = Query(default=ALL_PROVIDERS)) -> dict[str, Any]:
        parsed = parse_item_id(item_id)
        try:
            inspector_session.collapse(scope, parsed)
        except UnknownItemError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _describe(scope, parsed)

    @router.get(
        "/parameters/{item_id}",
        summary="Get Item Parameters",
        description="Current values, form fields, invocability and, for templates, the preview URI.",
    )
    async def get_item_parameters(item_id: str, scope: str = Query(default=ALL_PROVIDERS)) -> dict[str, Any]:
        return _describe(scope, parse_item_id(item_id))

    @router.patch(
        "/parameters/{item_id}",
        summary="Set Parameter Value",
        description="Set one parameter value exactly as entered.",
    )
    async def set_parameter(
        item_id: str,
        data: ParameterUpdate,
        scope: str = Query(default=ALL_PROVIDERS),
    ) -> dict[str, Any]:
        parsed = parse_item_id(item_id)
        try:
            inspector_session.set_value(scope, parsed, data.key, data.value)
        except UnknownItemError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _describe(scope, parsed)

    return router
