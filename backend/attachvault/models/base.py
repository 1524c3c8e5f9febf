"""Declarative base, id generation and the mixins shared by attachvault tables."""
import uuid
from datetime import datetime
from sqlalchemy import MetaData, String, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Stable constraint names so indexes and foreign keys match across databases
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def generate_id() -> str:
    """32-char hex id for attachments and documents. Also used in blob paths."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class OwnerMixin:
    """Creator identity. NULL when the record was written with permission checks bypassed."""
    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
