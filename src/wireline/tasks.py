"""Celery tasks for the scheduled user cleanup."""

import logging
from functools import lru_cache
from typing import Dict

from .cleanup import run_cleanup
from .config import settings
from .database import create_session_factory, create_store_engine
from .mailer import Mailer
from .repository import UserRepository
from .worker import celery_app


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def build_repository() -> UserRepository:
    engine = create_store_engine(settings.store_url, settings.store_key)
    return UserRepository(create_session_factory(engine))


@celery_app.task(name="wireline.tasks.cleanup_scheduled_users")
def cleanup_scheduled_users() -> Dict[str, object]:
    """Delete expired accounts and send reminders; runs once per schedule tick.

    Failures are not retried: the next tick picks up whatever is still due.
    """
    logger.info("running scheduled user cleanup")
    result = run_cleanup(build_repository(), Mailer.from_settings(settings))
    if result["errors"]:
        logger.warning("cleanup finished with errors: %s", result["errors"])
    return result
