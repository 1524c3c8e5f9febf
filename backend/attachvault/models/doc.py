"""Doc model - content documents that may embed attachment values anywhere in body."""
from sqlalchemy import String, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column
from attachvault.models.base import Base, TimestampMixin, OwnerMixin, generate_id


class Doc(Base, TimestampMixin, OwnerMixin):
    __tablename__ = "docs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    type: Mapped[str] = mapped_column(String(50), default="page")
    title: Mapped[str] = mapped_column(String(500), default="")
    trash: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    body: Mapped[dict] = mapped_column(JSON, default=dict)
