"""Permanent removal of accounts whose deletion grace period has elapsed."""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from prometheus_client import Counter

from .mailer import Mailer, MailError
from .repository import StorageError, UserRepository

logger = logging.getLogger(__name__)

DELETION_GRACE_DAYS = 30
REMINDER_DAYS = (7, 3, 1)

USERS_DELETED_COUNTER = Counter(
    "cleanup_users_deleted_total", "Total accounts permanently deleted by cleanup"
)
REMINDERS_SENT_COUNTER = Counter(
    "cleanup_reminders_sent_total", "Total deletion reminder e-mails sent"
)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_until_deletion(
    scheduled_at: datetime, now: Optional[datetime] = None
) -> int:
    """Whole days, rounded up, until the grace period of ``scheduled_at`` ends.

    Zero or negative means the account is due for permanent deletion.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    deletion_date = _as_utc(scheduled_at) + timedelta(days=DELETION_GRACE_DAYS)
    return math.ceil((deletion_date - now) / timedelta(days=1))


def run_cleanup(
    repository: UserRepository,
    mailer: Mailer,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """Delete expired accounts and remind owners whose deadline is close.

    Failures for individual users are collected in ``errors`` and do not stop
    the run. Running twice on the same day deletes nothing new.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    deleted = 0
    reminders = 0
    errors: List[str] = []

    try:
        scheduled = repository.get_users_scheduled_for_deletion()
    except StorageError as exc:
        logger.error("cleanup could not list scheduled users: %s", exc)
        errors.append(f"Cleanup error: {exc}")
        scheduled = []

    logger.info("cleanup found %d users scheduled for deletion", len(scheduled))
    for user in scheduled:
        if user.deletion_scheduled_at is None:
            continue
        remaining = days_until_deletion(user.deletion_scheduled_at, now)

        if remaining <= 0:
            try:
                repository.delete_user(user.id)
            except StorageError as exc:
                errors.append(f"Failed to delete user {user.username}: {exc}")
                continue
            deleted += 1
            USERS_DELETED_COUNTER.inc()
            logger.info(
                "permanently deleted user %s (id=%s) after %d-day grace period",
                user.username,
                user.id,
                DELETION_GRACE_DAYS,
            )
        elif remaining in REMINDER_DAYS:
            try:
                mailer.send_deletion_reminder(user.email, user.full_name, remaining)
            except MailError as exc:
                errors.append(f"Failed to send reminder to {user.email}: {exc}")
                continue
            reminders += 1
            REMINDERS_SENT_COUNTER.inc()
            logger.info("sent %d-day reminder to %s", remaining, user.email)

    logger.info(
        "cleanup completed deleted=%d reminders=%d errors=%d",
        deleted,
        reminders,
        len(errors),
    )
    return {
        "deleted_users": deleted,
        "reminders_sent": reminders,
        "errors": errors,
    }
