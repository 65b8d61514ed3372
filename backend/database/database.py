import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from config import DATABASE_URL, SQL_ECHO
from database.models import Base

logger = logging.getLogger(__name__)


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO) -> Engine:
    """Create an engine usable from executor threads."""
    connect_args = {}
    if url.startswith("sqlite"):
        # Store calls run in the default thread pool
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=echo, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine):
    """Create all database tables"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")
    except SQLAlchemyError as e:
        logger.error(f"Error creating tables: {e}")
        raise


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session and always close it; callers commit explicitly."""
    db = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
