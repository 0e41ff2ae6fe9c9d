"""
Module: supper_kernel.db.engine
Responsibility: Engine and session factory construction for the document
    store and run history.
Architecture position: Kernel > DB.

Engines are built and handed to their users explicitly.  There is no
module-level engine: every store, history and scheduler receives the
session factory it should use.

Failure modes:
    - sqlalchemy.exc.ArgumentError on a malformed database URL.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from supper_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for ``database_url``.

    In-memory SQLite URLs get a StaticPool so every session created from
    the factory sees the same database (used by tests and dry runs).
    PostgreSQL URLs get pre-ping pooling.
    """
    if database_url.startswith("sqlite") and (
        database_url in ("sqlite://", "sqlite:///:memory:")
    ):
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    elif database_url.startswith("sqlite"):
        engine = create_engine(database_url, echo=echo)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=1800,
        )

    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "echo": echo},
    )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create every table registered on ``Base.metadata``."""
    # Callers import their own model modules first so their tables are
    # registered; the document table always is.
    import supper_kernel.store.models  # noqa: F401
    from supper_kernel.db.base import Base

    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables(engine: Engine) -> None:
    from supper_kernel.db.base import Base

    Base.metadata.drop_all(engine)
