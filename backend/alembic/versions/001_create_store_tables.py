"""Create store tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates `store_entities` (every notebook, tag, note, saved search and
       linked notebook, payload as JSON) and `sync_counters` (per-scope
       update count).
How:   Portable column types only, so the same revision runs on SQLite and
       PostgreSQL.

Rollback: downgrade() drops both tables (all stored data is lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "store_entities",
        sa.Column("guid", sa.String(36), nullable=False),
        sa.Column(
            "scope",
            sa.String(16),
            nullable=False,
            comment="Data partition: personal or business",
        ),
        sa.Column(
            "kind",
            sa.String(32),
            nullable=False,
            comment="notebook, tag, note, search or linked_notebook",
        ),
        sa.Column(
            "name",
            sa.String(255),
            nullable=True,
            comment="Lower-cased unique name, or the note title",
        ),
        sa.Column("parent_guid", sa.String(36), nullable=True),
        sa.Column(
            "update_sequence_num",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "payload",
            sa.JSON(),
            nullable=False,
            comment="Full record using wire field names",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("guid", name="pk_store_entities"),
    )
    op.create_index("idx_store_entities_scope_kind", "store_entities", ["scope", "kind"])
    op.create_index("idx_store_entities_parent", "store_entities", ["parent_guid"])

    op.create_table(
        "sync_counters",
        sa.Column("scope", sa.String(16), nullable=False),
        sa.Column(
            "update_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.PrimaryKeyConstraint("scope", name="pk_sync_counters"),
    )


def downgrade() -> None:
    op.drop_table("sync_counters")
    op.drop_index("idx_store_entities_parent", table_name="store_entities")
    op.drop_index("idx_store_entities_scope_kind", table_name="store_entities")
    op.drop_table("store_entities")
