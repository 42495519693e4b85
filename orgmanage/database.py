"""Async SQLAlchemy engine, session management and post-commit hooks."""

from typing import Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session

from orgmanage.config import settings

_AFTER_COMMIT_KEY = "after_commit_callbacks"


def _connect_args(url: str) -> dict:
    # asyncpg bounds every statement; other drivers keep their defaults
    if url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.REQUEST_TIMEOUT_SECONDS}
    return {}


# Async engine for FastAPI
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
    pool_timeout=settings.REQUEST_TIMEOUT_SECONDS,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db() -> AsyncSession:
    """FastAPI dependency: yield an async database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Post-commit hooks ───────────────────────────────────────────────
# Change events and session events must only leave the process once the
# rows they describe are durable, so they are queued on the session and
# released by the outermost COMMIT.

def on_commit(db: AsyncSession | Session, callback: Callable[[], None]) -> None:
    """Run *callback* once the current transaction of *db* commits."""
    db.info.setdefault(_AFTER_COMMIT_KEY, []).append(callback)


@event.listens_for(Session, "after_commit")
def _run_after_commit(session: Session) -> None:
    callbacks = session.info.pop(_AFTER_COMMIT_KEY, [])
    for callback in callbacks:
        callback()


@event.listens_for(Session, "after_soft_rollback")
def _drop_after_rollback(session: Session, previous_transaction) -> None:
    if previous_transaction.parent is None:
        session.info.pop(_AFTER_COMMIT_KEY, None)
