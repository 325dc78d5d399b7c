from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from pinpoint.db.base import Base
from pinpoint.models.user import User


class Annotation(Base):
    __tablename__ = "annotation"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(16), nullable=False)
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    end_x = Column(Float, nullable=True)
    end_y = Column(Float, nullable=True)
    label = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    is_hidden = Column(Boolean, nullable=False, default=False)
    image_id = Column(Integer, ForeignKey("image.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    created_by = relationship(User, lazy="joined")
