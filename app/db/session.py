"""
Async engine and session factory for the follow-up store.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
    )


def create_session_factory(database_url: str, echo: bool = False) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        create_engine(database_url, echo=echo),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
