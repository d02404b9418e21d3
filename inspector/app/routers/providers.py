from typing import Any

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import select

from inspector.app.core.logger import get_logger
from inspector.app.core.provider_runtime import ProviderConnectionError
from inspector.app.models.db_models import new_provider_id, next_provider_color
from inspector.app.schemas.capabilities import ProviderInfo


logger = get_logger(__name__)


def create_providers_router(
    session_local_factory,
    provider_model,
    provider_registration_model,
    provider_update_model,
    provider_runtime,
    inspector_session,
) -> APIRouter:
    router = APIRouter()

    def _provider_info(row) -> ProviderInfo:
        return ProviderInfo(id=row.id, name=row.name, color=row.color)

    def _serialize(row) -> dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "url": row.url,
            "description": row.description or "",
            "color": row.color,
            "is_enabled": bool(row.is_enabled),
            "is_deleted": bool(row.is_deleted),
            "connected": provider_runtime.is_connected(row.id),
        }

    def _get_active(db, provider_id: str):
        row = db.get(provider_model, provider_id)
        if row is None or row.is_deleted:
            raise HTTPException(status_code=404, detail=f"Provider '{provider_id}' not found")
        return row

    async def _drop_connection(provider_id: str) -> bool:
        if not await provider_runtime.disconnect(provider_id):
            return False
        inspector_session.refresh()
        return True

    @router.post(
        "/providers",
        status_code=201,
        summary="Register Provider",
        description="Add an MCP provider to the registry. A previously deleted provider with the same name is revived.",
    )
    async def register_provider(data: provider_registration_model) -> dict[str, Any]:
        with session_local_factory() as db:
            existing = db.scalar(select(provider_model).where(provider_model.name == data.name))
            if existing is not None and not existing.is_deleted:
                raise HTTPException(status_code=409, detail=f"Provider '{data.name}' already exists")

            used_colors = [
                row.color
                for row in db.scalars(select(provider_model).where(provider_model.is_deleted == False)).all()  # noqa: E712
            ]
            color = data.color or next_provider_color(used_colors)
            if existing is not None:
                existing.url = data.url
                existing.description = (data.description or "").strip()
                existing.color = color
                existing.is_enabled = True
                existing.is_deleted = False
                row = existing
            else:
                row = provider_model(
                    id=new_provider_id(data.name),
                    name=data.name,
                    url=data.url,
                    description=(data.description or "").strip(),
                    color=color,
                    is_enabled=True,
                    is_deleted=False,
                )
                db.add(row)
            db.commit()
            logger.info("Registered provider '%s' (%s)", row.name, row.id)
            return _serialize(row)

    @router.get(
        "/providers",
        summary="List Providers",
        description="List registered MCP providers with their connection flag.",
    )
    def list_providers(include_inactive: bool = Query(default=False)) -> dict[str, list[dict[str, Any]]]:
        with session_local_factory() as db:
            stmt = select(provider_model).order_by(provider_model.created_on, provider_model.name)
            if not include_inactive:
                stmt = stmt.where(
                    provider_model.is_deleted == False,  # noqa: E712
                    provider_model.is_enabled == True,  # noqa: E712
                )
            rows = db.scalars(stmt).all()
            return {"providers": [_serialize(row) for row in rows]}

    @router.get(
        "/providers/status",
        summary="Get Providers Status",
        description="Connection rollup for all active providers, with listing counts for connected ones.",
    )
    def list_providers_status() -> dict[str, Any]:
        with session_local_factory() as db:
            rows = db.scalars(
                select(provider_model).where(
                    provider_model.is_deleted == False,  # noqa: E712
                    provider_model.is_enabled == True,  # noqa: E712
                )
            ).all()
            providers = [(row.id, row.name, row.url) for row in rows]

        statuses = []
        for provider_id, name, url in providers:
            connection = provider_runtime.connection(provider_id)
            statuses.append(
                {
                    "id": provider_id,
                    "name": name,
                    "url": url,
                    "status": "connected" if connection else "disconnected",
                    "latency_ms": connection.latency_ms if connection else None,
                    "counts": connection.counts() if connection else None,
                }
            )

        connected = sum(1 for status in statuses if status["status"] == "connected")
        return {
            "providers": statuses,
            "summary": {
                "total": len(statuses),
                "connected": connected,
                "disconnected": len(statuses) - connected,
            },
        }

    @router.patch(
        "/providers/{provider_id}",
        summary="Update Provider",
        description="Update provider settings. Disabling a provider or changing its URL drops its live connection.",
    )
    async def update_provider(provider_id: str, data: provider_update_model) -> dict[str, Any]:
        with session_local_factory() as db:
            row = _get_active(db, provider_id)
            updates = data.model_dump(exclude_unset=True)
            if "description" in updates:
                row.description = (updates["description"] or "").strip()
            url_changed = updates.get("url") is not None and updates["url"] != row.url
            if url_changed:
                row.url = updates["url"]
            if updates.get("color") is not None:
                row.color = updates["color"]
            if updates.get("is_enabled") is not None:
                row.is_enabled = updates["is_enabled"]
            db.commit()
            disabled = not row.is_enabled

        if disabled or url_changed:
            await _drop_connection(provider_id)

        with session_local_factory() as db:
            return _serialize(_get_active(db, provider_id))

    @router.delete(
        "/providers/{provider_id}",
        summary="Delete Provider",
        description="Soft-delete a provider and drop its live connection.",
    )
    async def delete_provider(provider_id: str) -> dict[str, Any]:
        with session_local_factory() as db:
            row = _get_active(db, provider_id)
            row.is_deleted = True
            row.is_enabled = False
            db.commit()

        disconnected = await _drop_connection(provider_id)
        logger.info("Deleted provider '%s'", provider_id)
        return {"id": provider_id, "deleted": True, "disconnected": disconnected}

    @router.post(
        "/providers/{provider_id}/connect",
        summary="Connect Provider",
        description="Open an MCP session to the provider and load its capability listings.",
    )
    async def connect_provider(provider_id: str) -> dict[str, Any]:
        with session_local_factory() as db:
            row = _get_active(db, provider_id)
            if not row.is_enabled:
                raise HTTPException(status_code=409, detail=f"Provider '{provider_id}' is disabled")
            provider = _provider_info(row)
            url = row.url

        was_connected = provider_runtime.is_connected(provider.id)
        try:
            connection = await provider_runtime.connect(provider, url)
        except ProviderConnectionError as exc:
            if was_connected:
                # The previous session was closed before the attempt.
                inspector_session.refresh()
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        catalog = inspector_session.refresh()
        return {
            "id": provider.id,
            "name": provider.name,
            "status": "connected",
            "latency_ms": connection.latency_ms,
            "counts": connection.counts(),
            "revision": catalog.revision,
        }

    @router.post(
        "/providers/{provider_id}/disconnect",
        summary="Disconnect Provider",
        description="Close the provider's MCP session; its capabilities leave the catalog.",
    )
    async def disconnect_provider(provider_id: str) -> dict[str, Any]:
        with session_local_factory() as db:
            _get_active(db, provider_id)

        disconnected = await _drop_connection(provider_id)
        return {
            "id": provider_id,
            "disconnected": disconnected,
            "revision": inspector_session.catalog.revision,
        }

    return router
