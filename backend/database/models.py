from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Presentation(Base):
    """One shared slide document.

    ``slides`` and ``users`` are stored as JSON arrays. ``version`` is the
    optimistic concurrency token: every write goes through a conditional
    UPDATE that matches the version the writer read and bumps it.
    """
    __tablename__ = "presentations"

    id = Column(String(32), primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slides = Column(JSON, nullable=False, default=list)
    users = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=func.now())

    def to_dict(self) -> dict:
        """Convert Presentation model to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "title": self.title,
            "slides": self.slides or [],
            "users": self.users or [],
            "version": self.version,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
