from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from pinpoint.db.base import Base


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False)
    username = Column(String, nullable=True)
    role = Column(String, nullable=False, default="USER")
    is_banned = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
