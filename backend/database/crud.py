from sqlalchemy.orm import Session
from sqlalchemy import desc, update
from .models import Presentation
from typing import List, Optional


class PresentationCRUD:
    """CRUD operations for Presentation model"""

    @staticmethod
    def create_presentation(db: Session, presentation_id: str, title: str,
                            slides: list, users: list) -> Presentation:
        """Create a new presentation at version 1"""
        db_presentation = Presentation(
            id=presentation_id,
            title=title,
            slides=slides,
            users=users,
            version=1
        )
        db.add(db_presentation)
        db.commit()
        db.refresh(db_presentation)
        return db_presentation

    @staticmethod
    def get_presentation_by_id(db: Session, presentation_id: str) -> Optional[Presentation]:
        """Get presentation by ID"""
        return db.query(Presentation).filter(Presentation.id == presentation_id).first()

    @staticmethod
    def get_all_presentations(db: Session, skip: int = 0, limit: int = 100) -> List[Presentation]:
        """Get all presentations, newest first"""
        return db.query(Presentation).order_by(
            desc(Presentation.created_at)
        ).offset(skip).limit(limit).all()

    @staticmethod
    def update_if_version(db: Session, presentation_id: str, expected_version: int, **fields) -> int:
        """
        Conditionally write fields.

        The row is written only while its version still equals
        ``expected_version``; the version is bumped in the same statement.
        Returns the number of rows written (0 or 1).
        """
        stmt = (
            update(Presentation)
            .where(Presentation.id == presentation_id)
            .where(Presentation.version == expected_version)
            .values(version=expected_version + 1, **fields)
        )
        result = db.execute(stmt, execution_options={"synchronize_session": False})
        db.commit()
        return result.rowcount

    @staticmethod
    def exists(db: Session, presentation_id: str) -> bool:
        return db.query(Presentation.id).filter(Presentation.id == presentation_id).first() is not None
