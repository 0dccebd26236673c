"""PostgreSQL engine and per-request ORM sessions for user records."""

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


def build_engine(config: Settings) -> Engine:
    """Pooled engine; pre-ping drops connections the server closed while idle."""
    return create_engine(
        config.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=config.DATABASE_POOL_SIZE,
        pool_timeout=config.DATABASE_POOL_TIMEOUT_SEC,
        echo=config.DEBUG,
    )


engine = build_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request dependency: one session per request, rolled back if the handler raised."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts outside a request (e.g. bootstrapping the first user)."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run SELECT 1; False (and a warning) when the database cannot answer."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)
        return False
