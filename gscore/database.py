"""
G-Score Engine - Database Engine.

============================================================
PURPOSE
============================================================
SQLAlchemy engine and session handling for the composite
history store.

- URL from GSCORE_DATABASE_URL (a .env file is honored)
- Local SQLite file when unset
- Explicit transaction scope: commit on success, rollback on error

============================================================
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL_ENV = "GSCORE_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite:///gscore_history.db"

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv(DATABASE_URL_ENV)
    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"{DATABASE_URL_ENV} not set, using default: {url}")
    return url


def create_database_engine(url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine.

    Args:
        url: Database URL (environment/default when omitted)
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    database_url = url or get_database_url()
    logger.info(f"Creating database engine for: {database_url.split('@')[-1]}")

    engine = create_engine(database_url, echo=echo, future=True)

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    # Registers the mapped classes on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("History tables initialized")


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


@contextmanager
def session_scope(engine: Engine) -> Generator[Session, None, None]:
    """
    Transactional session scope.

    Commits on success, rolls back and re-raises on any error.
    """
    session = create_session_factory(engine)()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
