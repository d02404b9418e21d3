from contextlib import asynccontextmanager
from pathlib import Path
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import inspect, select

# Allow running `python main.py` from the `inspector/` directory.
CURRENT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = CURRENT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from inspector.env import ENV
from inspector.app.core.db import DB_BACKEND, SessionLocal, engine
from inspector.app.core.logger import get_logger
from inspector.app.core.provider_runtime import ProviderConnectionError, ProviderRuntime
from inspector.app.models.db_models import Base, ProviderModel
from inspector.app.routers.capabilities import create_capabilities_router
from inspector.app.routers.health import create_health_router
from inspector.app.routers.parameters import create_parameters_router
from inspector.app.routers.providers import create_providers_router
from inspector.app.routers.testing import create_testing_router
from inspector.app.schemas.capabilities import ProviderInfo
from inspector.app.schemas.registration import ProviderRegistration, ProviderUpdate
from inspector.app.services.session import InspectorSession


logger = get_logger(__name__)


def init_db(bind=None) -> None:
    bind = bind if bind is not None else engine
    expected_tables = set(Base.metadata.tables.keys())
    if not expected_tables:
        raise RuntimeError("No SQLAlchemy models are registered in Base.metadata")

    Base.metadata.create_all(bind=bind)
    missing_tables = sorted(expected_tables - set(inspect(bind).get_table_names()))
    if missing_tables:
        raise RuntimeError(f"Database tables missing after create_all: {', '.join(missing_tables)}")


async def connect_enabled_providers(session_local_factory, provider_runtime, inspector_session) -> int:
    with session_local_factory() as db:
        rows = db.scalars(
            select(ProviderModel).where(
                ProviderModel.is_deleted == False,  # noqa: E712
                ProviderModel.is_enabled == True,  # noqa: E712
            )
        ).all()
        providers = [(ProviderInfo(id=row.id, name=row.name, color=row.color), row.url) for row in rows]

    connected = 0
    for provider, url in providers:
        try:
            await provider_runtime.connect(provider, url)
            connected += 1
        except ProviderConnectionError as exc:
            logger.warning("Auto-connect skipped provider '%s': %s", provider.name, exc)

    inspector_session.refresh()
    return connected


def create_app(
    session_local_factory=SessionLocal,
    db_engine=engine,
    db_backend: str = DB_BACKEND,
    provider_runtime: ProviderRuntime | None = None,
    auto_connect: bool = ENV.auto_connect_providers,
) -> FastAPI:
    provider_runtime = provider_runtime or ProviderRuntime()
    inspector_session = InspectorSession(provider_runtime)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        init_db(db_engine)
        if auto_connect:
            count = await connect_enabled_providers(session_local_factory, provider_runtime, inspector_session)
            logger.info("Auto-connected %s providers", count)
        yield
        await provider_runtime.disconnect_all()

    app = FastAPI(title="MCP Capability Inspector", lifespan=lifespan)
    app.state.provider_runtime = provider_runtime
    app.state.inspector_session = inspector_session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_health_router(db_backend, provider_runtime), tags=["Health"])
    app.include_router(
        create_providers_router(
            session_local_factory,
            ProviderModel,
            ProviderRegistration,
            ProviderUpdate,
            provider_runtime,
            inspector_session,
        ),
        tags=["Providers"],
    )
    app.include_router(create_capabilities_router(inspector_session, provider_runtime), tags=["Capabilities"])
    app.include_router(create_parameters_router(inspector_session), tags=["Parameters"])
    app.include_router(create_testing_router(inspector_session), tags=["Tests"])
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("inspector.main:app", host=ENV.host, port=ENV.port, reload=True)
