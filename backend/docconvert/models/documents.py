"""
SQLAlchemy ORM Models — Stored Documents

One row per converted upload. The row holds the user-facing metadata plus
the S3 keys and presigned URLs of both artifacts:

    <user_id>/documents/<id>.pdf   ← PDF rendition
    <user_id>/documents/<id>.txt   ← text extraction
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Declarative base: shared across all models
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# StoredDocument: documents
# ---------------------------------------------------------------------------

class StoredDocument(Base):
    """
    Lifecycle:
        insert (paths empty) → both artifacts uploaded → paths + URLs set
        PATCH merges client/type; DELETE removes both objects and the row.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Owner: opaque subject from the identity provider; never client-supplied
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Original filename shown in the library",
    )
    client: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="User-assigned group the document belongs to",
    )
    type: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="User-assigned document classification",
    )

    path_pdf: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    path_txt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url_pdf:  Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url_txt:  Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<StoredDocument id={self.id} user={self.user_id} name={self.name!r}>"
