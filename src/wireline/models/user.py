from sqlalchemy import Column, DateTime, Integer, SmallInteger, String, Text, func

from ..database import Base

USER_ROLE = "user"
ADMIN_ROLE = "admin"

STATUS_ACTIVE = 1
STATUS_INACTIVE = 0


class User(Base):
    """SQLAlchemy model for application users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    full_name = Column(Text, nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(50), default=USER_ROLE, server_default=USER_ROLE, nullable=False)
    status = Column(SmallInteger, default=STATUS_ACTIVE, server_default="1", nullable=False)
    deletion_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
