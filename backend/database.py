"""
Database engine and session wiring.

The session factory is built once by the application factory and stored on
``app.state.session_factory``; get_db and the access gate both draw sessions
from there.
"""

import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for the given URL."""
    logger.debug(f"Creating database engine for dialect: {database_url.split(':', 1)[0]}")
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Yield a database session for the duration of a request.

    Example:
        @app.get("/api/things")
        def list_things(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
