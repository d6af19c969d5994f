"""Database engine and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.config import settings

IN_MEMORY_DSNS = ("sqlite://", "sqlite:///:memory:")


def build_engine(dsn: str) -> Engine:
    """Create an engine for ``dsn``.

    SQLite connections are shared with the request threadpool, and an
    in-memory database must keep a single connection or it vanishes.
    """
    if not dsn.startswith("sqlite"):
        return create_engine(dsn, pool_pre_ping=True)

    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if dsn in IN_MEMORY_DSNS:
        kwargs["poolclass"] = StaticPool
    return create_engine(dsn, **kwargs)


engine = build_engine(settings.APP_DATABASE_DSN)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create the coupons and orders tables if they do not exist."""
    import storefront.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
