"""Access-control schema - permission sets, profiles, table and field grants.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID_DEFAULT = sa.text("gen_random_uuid()")


def _flag(name: str, default: bool) -> sa.Column:
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.true() if default else sa.false())


def upgrade() -> None:
    op.create_table(
        "permission_sets",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=_UUID_DEFAULT),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("table_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_permission_sets_name", "permission_sets", ["name"], unique=True)

    op.create_table(
        "profiles",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=_UUID_DEFAULT),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_profiles_name", "profiles", ["name"], unique=True)

    op.create_table(
        "permission_set_table_access",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=_UUID_DEFAULT),
        sa.Column(
            "permission_set_id",
            sa.UUID(),
            sa.ForeignKey("permission_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("table_name", sa.String(255), nullable=False),
        _flag("can_create", False),
        _flag("can_read", False),
        _flag("can_update", False),
        _flag("can_delete", False),
        sa.UniqueConstraint("permission_set_id", "table_name", name="uq_permission_set_table"),
    )

    op.create_table(
        "permission_set_field_access",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=_UUID_DEFAULT),
        sa.Column(
            "table_access_id",
            sa.UUID(),
            sa.ForeignKey("permission_set_table_access.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field_name", sa.String(255), nullable=False),
        _flag("can_view", True),
        _flag("can_edit", False),
        sa.UniqueConstraint("table_access_id", "field_name", name="uq_table_access_field"),
    )

    # user_id references the identity provider's users; no local FK.
    op.create_table(
        "user_table_access",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=_UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("table_name", sa.String(255), nullable=False),
        _flag("can_create", False),
        _flag("can_read", False),
        _flag("can_update", False),
        _flag("can_delete", False),
        sa.Column("source_type", sa.String(20), nullable=False, server_default="direct"),
        sa.Column(
            "profile_id",
            sa.UUID(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.UniqueConstraint("user_id", "table_name", "source_type", name="uq_user_table_source"),
        sa.CheckConstraint("source_type IN ('direct', 'profile')", name="ck_user_table_source_type"),
    )
    op.create_index("ix_user_table_access_user_id", "user_table_access", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_user_table_access_user_id", table_name="user_table_access")
    op.drop_table("user_table_access")
    op.drop_table("permission_set_field_access")
    op.drop_table("permission_set_table_access")
    op.drop_index("ix_profiles_name", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("ix_permission_sets_name", table_name="permission_sets")
    op.drop_table("permission_sets")
