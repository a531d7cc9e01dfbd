# change_audit/infrastructure/database/session.py

from typing import Any, Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base

from change_audit.config.settings import get_settings

Base = declarative_base()


def create_session_factory(
    database_url: Optional[str] = None,
    **engine_kwargs: Any,
) -> async_sessionmaker:
    """
    Async session factory for audited units of work.
    autoflush stays off so queries do not flush half-stamped entities;
    expire_on_commit stays off so finalize can read keys without another round trip.
    """
    url = database_url or get_settings().database_url
    if not url:
        raise ValueError("database_url is not configured")

    engine = create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        **engine_kwargs,
    )

    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )
