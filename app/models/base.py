import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime

from app.core.database import Base


def generate_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Colonnes communes à toutes les tables"""
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=generate_id)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
