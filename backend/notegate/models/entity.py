"""
NoteGate — Store ORM Models
=============================

What:  ORM models backing the local note store.
How:   Every store object (notebook, tag, note, saved search, linked
       notebook) is one `StoreEntity` row. Columns hold what the store
       filters and orders on; the full domain record is kept as JSON in
       `payload` using wire names. `SyncCounter` holds the per-scope update
       count that stamps update sequence numbers.
Who:   Used by LocalNoteStore; Alembic reads these for migrations.

Table Design:
    store_entities
        guid                 PK, UUID string
        scope                'personal' | 'business'
        kind                 'notebook' | 'tag' | 'note' | 'search' | 'linked_notebook'
        name                 lower-cased unique name for notebooks/tags/searches,
                             note title for notes
        parent_guid          a note's notebook GUID
        update_sequence_num  USN stamped at the last mutation
        payload              JSON dump of the record
        created_at           insertion time (UTC)
    sync_counters
        scope                PK
        update_count         highest USN handed out in the scope
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP

from notegate.database import Base


class StoreEntity(Base):
    """One stored notebook, tag, note, saved search or linked notebook."""

    __tablename__ = "store_entities"

    guid: Mapped[str] = mapped_column(String(36), primary_key=True)

    scope: Mapped[str] = mapped_column(String(16), nullable=False)

    kind: Mapped[str] = mapped_column(String(32), nullable=False)

    # Lower-cased for notebooks/tags/searches (case-insensitive uniqueness)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    parent_guid: Mapped[str | None] = mapped_column(String(36), nullable=True)

    update_sequence_num: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_store_entities_scope_kind", "scope", "kind"),
        Index("idx_store_entities_parent", "parent_guid"),
    )

    def __repr__(self) -> str:
        return (
            f"<StoreEntity(guid={self.guid}, scope='{self.scope}', "
            f"kind='{self.kind}', usn={self.update_sequence_num})>"
        )


class SyncCounter(Base):
    """Per-scope update count."""

    __tablename__ = "sync_counters"

    scope: Mapped[str] = mapped_column(String(16), primary_key=True)

    update_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SyncCounter(scope='{self.scope}', update_count={self.update_count})>"
