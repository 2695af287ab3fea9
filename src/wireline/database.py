"""Store engine and session factory for user records."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_store_engine(url: str, access_key: str | None = None, **kwargs) -> Engine:
    """Build the engine for the managed store.

    The access key is used as the connection password unless the URL already
    carries one. SQLite URLs take no credentials and are passed through.
    """
    store_url = make_url(url)
    if access_key and store_url.get_backend_name() != "sqlite" and not store_url.password:
        store_url = store_url.set(password=access_key)
    logger.info("connecting to store %s", store_url.render_as_string(hide_password=True))
    return create_engine(store_url, future=True, pool_pre_ping=True, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create database tables if they do not exist."""
    # register mapped classes on Base.metadata
    from .models import user  # noqa: F401

    Base.metadata.create_all(bind=engine)
