"""Data access for user records."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from prometheus_client import Counter
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .models.user import ADMIN_ROLE, STATUS_ACTIVE, STATUS_INACTIVE, USER_ROLE, User
from .passwords import hash_password
from .schemas import UserCreate


logger = logging.getLogger(__name__)

USER_CREATED_COUNTER = Counter("users_created_total", "Total user accounts created")


class StorageError(Exception):
    """Raised when the store rejects or fails a request."""


def _handle_store_error(session: Session, exc: Exception) -> None:
    """Rollback the session and re-raise the failure as a StorageError."""
    session.rollback()
    logger.exception("store error", exc_info=exc)
    raise StorageError(f"Database error: {exc}") from exc


class UserRepository:
    """Reads and writes ``users`` rows through an injected session factory.

    Each call runs in its own session. Lookups return ``None`` when no row
    matches and raise :class:`StorageError` when the store itself fails.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_user_by_username(self, username: str) -> Optional[User]:
        logger.info("get user by username=%s", username)
        session: Session = self._session_factory()
        try:
            return session.scalars(
                select(User).where(User.username == username).limit(1)
            ).first()
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def get_user(self, user_id: int) -> Optional[User]:
        session: Session = self._session_factory()
        try:
            return session.get(User, user_id)
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def create_user(self, user: UserCreate) -> User:
        """Hash the password and insert a new account with the ``user`` role.

        Any role supplied by the caller is ignored.
        """
        logger.info("create user username=%s", user.username)
        session: Session = self._session_factory()
        try:
            db_user = User(
                username=user.username,
                password_hash=hash_password(user.password),
                full_name=user.full_name,
                email=user.email,
                role=USER_ROLE,
                status=STATUS_ACTIVE,
            )
            session.add(db_user)
            session.commit()
            session.refresh(db_user)
            if db_user.id is None:
                raise StorageError("No data returned from user creation")
            USER_CREATED_COUNTER.inc()
            logger.info("created user id=%s username=%s", db_user.id, db_user.username)
            return db_user
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def list_users(self) -> List[User]:
        session: Session = self._session_factory()
        try:
            return list(
                session.scalars(
                    select(User).order_by(User.created_at.desc(), User.id.desc())
                ).all()
            )
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def _update(self, user_id: int, **values) -> Optional[User]:
        session: Session = self._session_factory()
        try:
            db_user = session.get(User, user_id)
            if db_user is None:
                return None
            for key, value in values.items():
                setattr(db_user, key, value)
            session.commit()
            session.refresh(db_user)
            return db_user
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def set_role(self, user_id: int, role: str) -> Optional[User]:
        logger.info("set role user=%s role=%s", user_id, role)
        return self._update(user_id, role=role)

    def update_password(self, user_id: int, new_password: str) -> bool:
        logger.info("update password user=%s", user_id)
        return self._update(user_id, password_hash=hash_password(new_password)) is not None

    def schedule_deletion(self, user_id: int, scheduled_at: datetime) -> Optional[User]:
        """Mark the account inactive and start its deletion grace period."""
        logger.info("schedule deletion user=%s at=%s", user_id, scheduled_at)
        return self._update(
            user_id, deletion_scheduled_at=scheduled_at, status=STATUS_INACTIVE
        )

    def cancel_deletion(self, user_id: int) -> Optional[User]:
        logger.info("cancel deletion user=%s", user_id)
        return self._update(user_id, deletion_scheduled_at=None, status=STATUS_ACTIVE)

    def delete_user(self, user_id: int) -> bool:
        """Permanently remove the account. Returns ``False`` if it did not exist."""
        session: Session = self._session_factory()
        try:
            db_user = session.get(User, user_id)
            if db_user is None:
                return False
            session.delete(db_user)
            session.commit()
            logger.info("deleted user id=%s", user_id)
            return True
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def get_users_scheduled_for_deletion(self) -> List[User]:
        session: Session = self._session_factory()
        try:
            return list(
                session.scalars(
                    select(User)
                    .where(User.deletion_scheduled_at.is_not(None))
                    .order_by(User.deletion_scheduled_at.asc())
                ).all()
            )
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def count_users(self) -> Dict[str, int]:
        """Return account totals used by the dashboard."""
        session: Session = self._session_factory()
        try:
            def count(*criteria) -> int:
                return session.scalar(select(func.count(User.id)).where(*criteria)) or 0

            return {
                "total": count(),
                "active": count(User.status == STATUS_ACTIVE),
                "scheduled": count(User.deletion_scheduled_at.is_not(None)),
                "admins": count(User.role == ADMIN_ROLE),
            }
        except SQLAlchemyError as exc:
            _handle_store_error(session, exc)
        finally:
            session.close()

    def ping(self) -> bool:
        """Return ``True`` if the store answers a trivial query."""
        session: Session = self._session_factory()
        try:
            session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("store ping failed", exc_info=True)
            return False
        finally:
            session.close()
