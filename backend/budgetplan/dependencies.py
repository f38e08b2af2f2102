"""
FastAPI dependencies.
"""

from datetime import date
from typing import Generator, Optional

from fastapi import Header
from sqlalchemy.orm import Session

from budgetplan.config import settings
from budgetplan.database import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_organization_id(x_organization_id: Optional[int] = Header(None)) -> int:
    """Organization scope of the request, from the X-Organization-ID header."""
    if x_organization_id is None:
        return settings.default_organization_id
    return x_organization_id


def get_today() -> date:
    """Current date, overridable in tests."""
    return date.today()
