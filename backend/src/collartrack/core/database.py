from __future__ import annotations

import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, SQLModel, create_engine

from .config import Settings

logger = logging.getLogger(__name__)


def _sqlite_connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # Required for SQLite when used with FastAPI in threaded servers.
        return {"check_same_thread": False}
    return {}


def normalize_database_url(url: str) -> str:
    """Map libpq style ``postgres://`` URLs onto the psycopg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


class Database:
    """Owns the engine (and its connection pool) for one application instance."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        require_ssl: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 30.0,
    ) -> None:
        self.url = normalize_database_url(url)
        connect_args = _sqlite_connect_args(self.url)
        engine_kwargs: dict = {}
        if make_url(self.url).get_backend_name() != "sqlite":
            if require_ssl:
                connect_args["sslmode"] = "require"
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
            )
        self.engine: Engine = create_engine(
            self.url,
            echo=echo,
            connect_args=connect_args,
            **engine_kwargs,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.database_echo,
            require_ssl=settings.require_ssl,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )

    def init_schema(self) -> None:
        # Import models so SQLModel sees the metadata.
        from collartrack import models  # noqa: F401

        SQLModel.metadata.create_all(self.engine)
        logger.info("schema ready on %s", self.engine.url.render_as_string(hide_password=True))

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def session(self) -> Session:
        return Session(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_session(request: Request) -> Iterator[Session]:
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("database is not initialised; was the app lifespan started?")
    with database.session() as session:
        yield session
