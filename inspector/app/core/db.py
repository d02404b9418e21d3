from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inspector.app.core.logger import get_logger
from inspector.env import ENV


logger = get_logger(__name__)

FALLBACK_SQLITE_URL = "sqlite:///./inspector.db"


def build_engine(database_url: str) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if database_url in {"sqlite://", "sqlite:///:memory:"}:
        # One shared connection, otherwise every session sees an empty database.
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def _connect_engine(database_url: str, fallback_sqlite: bool) -> Engine:
    engine = build_engine(database_url)
    if database_url.startswith("sqlite") or not fallback_sqlite:
        return engine

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning(
            "Database '%s' unavailable (%s); falling back to %s",
            engine.url.render_as_string(),
            exc,
            FALLBACK_SQLITE_URL,
        )
        engine.dispose()
        return build_engine(FALLBACK_SQLITE_URL)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


engine = _connect_engine(ENV.database_url, ENV.db_fallback_sqlite)
DB_BACKEND = engine.dialect.name
SessionLocal = build_session_factory(engine)
