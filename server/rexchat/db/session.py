from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker

# Register table metadata before create_all
from rexchat.db import models  # noqa: F401


def _take_write_lock_on_begin(engine: AsyncEngine) -> None:
    # Each unit of work holds the write lock from BEGIN; others wait on the busy timeout
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, future=True)
        if self.engine.dialect.name == "sqlite":
            _take_write_lock_on_begin(self.engine)
        self._sessionmaker = sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False, autocommit=False
        )

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """One unit of work: committed on success, rolled back on any error."""
        session: AsyncSession = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
