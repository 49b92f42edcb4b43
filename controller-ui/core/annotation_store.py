# controller-ui/core/annotation_store.py
"""
Annotation Store - display names for members, keyed by member address
Independent of controller state; a dumb durable map.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from database.models import MemberAnnotation
from database.session import SessionLocal

logger = logging.getLogger(__name__)


class AnnotationStore:
    """
    Async facade over the member_annotations table

    Session work is blocking, so each call runs in a worker thread
    with its own short-lived session.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

    def _get(self, member_id: str) -> Optional[str]:
        db: Session = self._session_factory()
        try:
            row = db.get(MemberAnnotation, member_id)
            return row.name if row else None
        finally:
            db.close()

    def _set(self, member_id: str, name: str) -> None:
        db: Session = self._session_factory()
        try:
            row = db.get(MemberAnnotation, member_id)
            if row:
                row.name = name
            else:
                db.add(MemberAnnotation(member_id=member_id, name=name))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _remove(self, member_id: str) -> bool:
        db: Session = self._session_factory()
        try:
            row = db.get(MemberAnnotation, member_id)
            if not row:
                return False
            db.delete(row)
            db.commit()
            return True
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def get_name(self, member_id: str) -> Optional[str]:
        """Display name for a member, None when never set"""
        return await asyncio.to_thread(self._get, member_id)

    async def set_name(self, member_id: str, name: str) -> None:
        await asyncio.to_thread(self._set, member_id, name)
        logger.info(f"Annotation set for member {member_id}")

    async def remove_name(self, member_id: str) -> bool:
        """Remove a member's display name; returns whether one existed"""
        removed = await asyncio.to_thread(self._remove, member_id)
        if removed:
            logger.info(f"Annotation removed for member {member_id}")
        return removed


# Singleton instance
annotation_store = AnnotationStore()
