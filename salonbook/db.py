# salonbook/db.py

import logging

from sqlmodel import SQLModel, Session, create_engine

from salonbook.config import settings

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if settings.is_sqlite else {}  # required for SQLite + FastAPI

# Engine = connection to the database
engine = create_engine(
    settings.database_url,
    echo=settings.db_echo,
    connect_args=connect_args,
)


def init_db() -> None:
    # registers every table on SQLModel.metadata
    from salonbook import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ready")


def new_session() -> Session:
    """Session outside of a request, for background work and cron jobs."""
    return Session(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
