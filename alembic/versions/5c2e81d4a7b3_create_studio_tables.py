"""Create studio_cards, studio_dashboards, studio_dashboard_cards, studio_shares

Revision ID: 5c2e81d4a7b3
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e81d4a7b3"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the Studio card / dashboard / share tables.

    JSON blobs are TEXT so their bytes survive untouched (they feed the
    card configuration signature).
    """

    # --- studio_cards ---
    op.create_table(
        "studio_cards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("owner_user_id", sa.Integer, nullable=False),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column("client_id", sa.Integer, nullable=True),
        sa.Column("profile_id", sa.Integer, nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("card_type", sa.String(50), nullable=False, server_default=""),
        sa.Column("layout_type", sa.String(50), nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="Draft"),
        sa.Column("integration_id", sa.Integer, nullable=True),
        sa.Column("query", sa.Text, nullable=True),
        sa.Column("fields_json", sa.Text, nullable=True),
        sa.Column("style_json", sa.Text, nullable=True),
        sa.Column("layout_json", sa.Text, nullable=True),
        sa.Column("refresh_policy_json", sa.Text, nullable=True),
        sa.Column("data_source_json", sa.Text, nullable=True),
        sa.Column("last_tested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_test_succeeded", sa.Boolean, nullable=False,
                  server_default=sa.false()),
        sa.Column("last_test_signature", sa.String(64), nullable=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_studio_cards_scope_client", "studio_cards", ["scope", "client_id"])
    op.create_index("ix_studio_cards_scope_profile", "studio_cards", ["scope", "profile_id"])
    op.create_index("ix_studio_cards_owner", "studio_cards", ["owner_user_id"])

    # --- studio_dashboards ---
    op.create_table(
        "studio_dashboards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("owner_user_id", sa.Integer, nullable=False),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column("client_id", sa.Integer, nullable=True),
        sa.Column("profile_id", sa.Integer, nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("layout_type", sa.String(50), nullable=False, server_default="grid"),
        sa.Column("status", sa.String(20), nullable=False, server_default="Draft"),
        sa.Column("layout_json", sa.Text, nullable=True),
        sa.Column("refresh_policy_json", sa.Text, nullable=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_studio_dashboards_scope_client", "studio_dashboards", ["scope", "client_id"]
    )
    op.create_index(
        "ix_studio_dashboards_scope_profile", "studio_dashboards", ["scope", "profile_id"]
    )

    # --- studio_dashboard_cards ---
    op.create_table(
        "studio_dashboard_cards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "dashboard_id", sa.Integer,
            sa.ForeignKey("studio_dashboards.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("card_id", sa.Integer, sa.ForeignKey("studio_cards.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("show_title", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("show_description", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("integration_id", sa.Integer, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("position_x", sa.Integer, nullable=False, server_default="0"),
        sa.Column("position_y", sa.Integer, nullable=False, server_default="0"),
        sa.Column("width", sa.Integer, nullable=False, server_default="4"),
        sa.Column("height", sa.Integer, nullable=False, server_default="2"),
        sa.Column("layout_json", sa.Text, nullable=True),
        sa.Column("refresh_policy_json", sa.Text, nullable=True),
        sa.Column("data_source_json", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_studio_dashboard_cards_dashboard", "studio_dashboard_cards", ["dashboard_id"]
    )

    # --- studio_shares ---
    op.create_table(
        "studio_shares",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.Integer, nullable=False),
        sa.Column("subject_type", sa.String(20), nullable=False),
        sa.Column("subject_id", sa.Integer, nullable=False),
        sa.Column("access_level", sa.String(20), nullable=False, server_default="View"),
        sa.Column("shared_by_user_id", sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_unique_constraint(
        "uq_studio_shares_target_subject", "studio_shares",
        ["target_type", "target_id", "subject_type", "subject_id"],
    )
    op.create_index("ix_studio_shares_subject", "studio_shares", ["subject_type", "subject_id"])


def downgrade() -> None:
    """Drop the Studio tables (placements first for the FK)."""
    op.drop_table("studio_shares")
    op.drop_table("studio_dashboard_cards")
    op.drop_table("studio_dashboards")
    op.drop_table("studio_cards")
