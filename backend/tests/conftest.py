from contextlib import suppress
from typing import AsyncIterator, Callable, Iterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, func, select

from collartrack.core.config import Settings
from collartrack.core.database import Database
from collartrack.main import create_app


@pytest.fixture(scope="function")
def database(tmp_path) -> Iterator[Database]:
    # Fresh SQLite file per test for isolation
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.init_schema()
    try:
        yield db
    finally:
        with suppress(Exception):
            db.dispose()


@pytest.fixture
def settings(database: Database) -> Settings:
    return Settings(database_url=database.url, cors_origin="*", max_page_size=1000)


@pytest.fixture(scope="function")
def test_app(settings: Settings, database: Database) -> FastAPI:
    return create_app(settings=settings, database=database)


@pytest.fixture
async def client(test_app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def db_session(database: Database) -> Iterator[Session]:
    with database.session() as session:
        yield session


@pytest.fixture
def count_rows(database: Database) -> Callable[[type], int]:
    def _count(model: type) -> int:
        with database.session() as session:
            return session.exec(select(func.count()).select_from(model)).one()

    return _count


@pytest.fixture
def store_outage(database: Database) -> Iterator[str]:
    """Every statement sent to the store fails with a driver error."""
    message = "could not connect to server: Connection refused"

    def _fail(conn, cursor, statement, parameters, context, executemany):
        raise OperationalError(statement, parameters, Exception(message))

    event.listen(database.engine, "before_cursor_execute", _fail)
    try:
        yield message
    finally:
        event.remove(database.engine, "before_cursor_execute", _fail)
