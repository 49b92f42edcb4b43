# controller-ui/database/models.py
"""
SQLAlchemy Database Models for the annotation store
"""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()


class MemberAnnotation(Base):
    """
    Member annotation table - human-readable names for members
    The controller does not know these names; they are joined
    with controller state by member address at read time.
    """
    __tablename__ = "member_annotations"

    member_id = Column(String(10), primary_key=True,
                       comment="10 hex digit member address")
    name = Column(Text, nullable=False,
                  comment="Display name chosen by the operator")

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<MemberAnnotation(member_id={self.member_id}, name={self.name})>"
