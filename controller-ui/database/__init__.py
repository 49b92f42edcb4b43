"""
Database modules
"""

from .session import init_db, db_manager, build_engine, SessionLocal, engine
from .models import Base, MemberAnnotation

__all__ = [
    # Session
    "init_db",
    "db_manager",
    "build_engine",
    "SessionLocal",
    "engine",
    # Models
    "Base",
    "MemberAnnotation",
]
