"""Attachment model - one row per uploaded binary, plus its document references."""
from sqlalchemy import String, Integer, BigInteger, Boolean, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from attachvault.models.base import Base, TimestampMixin, OwnerMixin, generate_id
from attachvault.models.crop import Crop

ATTACHMENT_TYPE = "attachment"


class Attachment(Base, TimestampMixin, OwnerMixin):
    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    # Discriminator; NULL only on legacy rows awaiting the addType migration
    type: Mapped[str | None] = mapped_column(String(20), nullable=True, default=ATTACHMENT_TYPE)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    title: Mapped[str] = mapped_column(String(500), default="")
    extension: Mapped[str] = mapped_column(String(20), nullable=False)
    group: Mapped[str] = mapped_column(String(50), nullable=False)
    length: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    md5: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Images only
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    landscape: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    portrait: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Append-only list of {top, left, width, height}
    crops: Mapped[list] = mapped_column(JSON, default=list)

    utilized: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    # Current blob-store accessibility (True = disabled). NULL = never reconciled.
    trash: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    # False/NULL = legacy row whose references were never indexed
    references_indexed: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=True)

    references: Mapped[list["AttachmentReference"]] = relationship(
        back_populates="attachment", lazy="selectin",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    @property
    def doc_ids(self) -> list[str]:
        """Documents referencing this attachment while live."""
        return sorted(ref.doc_id for ref in self.references if not ref.trash)

    @property
    def trash_doc_ids(self) -> list[str]:
        """Documents referencing this attachment while trashed."""
        return sorted(ref.doc_id for ref in self.references if ref.trash)

    def crop_list(self) -> list[Crop]:
        """Recorded crops. Malformed legacy entries are skipped."""
        parsed = (Crop.parse(c) for c in (self.crops or []))
        return [c for c in parsed if c is not None]


class AttachmentReference(Base):
    """(attachment, document) pair. One row per pair keeps docIds and trashDocIds disjoint."""
    __tablename__ = "attachment_references"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    attachment_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("attachments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    doc_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    trash: Mapped[bool] = mapped_column(Boolean, default=False)

    attachment: Mapped["Attachment"] = relationship(back_populates="references")

    __table_args__ = (
        UniqueConstraint("attachment_id", "doc_id", name="uq_attachment_reference"),
    )
