"""Database session management for the record store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from insect_jobs.infrastructure.persistence_postgres.tables import metadata


def create_session_factory(
    database_url: str,
    echo: bool = False,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """엔진과 세션 팩토리 생성."""
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


async def ensure_schema(engine: AsyncEngine) -> None:
    """records 테이블 생성 (없으면)."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
