"""
Database module for SQLAlchemy models and session management.
"""

from samgov_intel.db.session import create_engine, get_db, get_engine, get_session_factory
from samgov_intel.db.base import Base

__all__ = ["create_engine", "get_db", "get_engine", "get_session_factory", "Base"]
