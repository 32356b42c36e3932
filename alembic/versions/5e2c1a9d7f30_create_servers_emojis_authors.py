"""Create servers, emojis and authors tables

Revision ID: 5e2c1a9d7f30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5e2c1a9d7f30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "servers",
        sa.Column("url", sa.String(255), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "software",
            sa.Enum("MASTODON", "MISSKEY", name="server_software_enum"),
            nullable=False,
        ),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "authors",
        sa.Column("handle", sa.String(320), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "emojis",
        sa.Column(
            "server_url",
            sa.String(255),
            sa.ForeignKey("servers.url", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("shortcode", sa.String(255), primary_key=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column(
            "tags",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
        ),
        sa.Column("sensitive", sa.Boolean(), nullable=True),
        sa.Column("copyable", sa.Boolean(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "author_handle",
            sa.String(320),
            sa.ForeignKey("authors.handle", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_emojis_author_handle", "emojis", ["author_handle"])


def downgrade() -> None:
    op.drop_index("ix_emojis_author_handle", table_name="emojis")
    op.drop_table("emojis")
    op.drop_table("authors")
    op.drop_table("servers")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS server_software_enum")
