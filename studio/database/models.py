"""
studio.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables owned by Studio:
- studio_cards            — Data-bound cards (KPI, table, chart, timeline)
- studio_dashboards       — Named arrangements of cards
- studio_dashboard_cards  — Card placements on a dashboard grid
- studio_shares           — View/Edit grants to users or groups

External tables (owned by the identity and integration services, read-only
here, modeled only as far as Studio queries them):
- users
- user_groups
- integrations

JSON blobs are kept as ``Text`` on purpose: their exact bytes feed the
configuration signature, so they must round-trip unmodified.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Not created by Studio migrations.
EXTERNAL_TABLES = frozenset({"users", "user_groups", "integrations"})


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Studio ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class StudioScope(enum.StrEnum):
    """Which tenant axis a card or dashboard belongs to."""
    CLIENT = "Client"
    COMPANY = "Company"


class CardStatus(enum.StrEnum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"


class DashboardStatus(enum.StrEnum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"


class ShareTarget(enum.StrEnum):
    CARD = "Card"
    DASHBOARD = "Dashboard"


class ShareSubject(enum.StrEnum):
    USER = "User"
    GROUP = "Group"


class ShareAccess(enum.StrEnum):
    VIEW = "View"
    EDIT = "Edit"


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------
class StudioCard(Base):
    """A data-bound visual element.

    When both ``integration_id`` and ``query`` are set the card requires a
    successful test; ``last_test_signature`` fingerprints the configuration
    that was tested.  Rows are never hard-deleted.
    """
    __tablename__ = "studio_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    client_id: Mapped[int | None] = mapped_column(Integer, default=None)
    profile_id: Mapped[int | None] = mapped_column(Integer, default=None)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    card_type: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    layout_type: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CardStatus.DRAFT.value
    )
    integration_id: Mapped[int | None] = mapped_column(Integer, default=None)
    query: Mapped[str | None] = mapped_column(Text, default=None)
    fields_json: Mapped[str | None] = mapped_column(Text, default=None)
    style_json: Mapped[str | None] = mapped_column(Text, default=None)
    layout_json: Mapped[str | None] = mapped_column(Text, default=None)
    refresh_policy_json: Mapped[str | None] = mapped_column(Text, default=None)
    data_source_json: Mapped[str | None] = mapped_column(Text, default=None)

    # Test gate state
    last_tested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    last_test_succeeded: Mapped[bool] = mapped_column(Boolean, default=False)
    last_test_signature: Mapped[str | None] = mapped_column(String(64), default=None)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_studio_cards_scope_client", "scope", "client_id"),
        Index("ix_studio_cards_scope_profile", "scope", "profile_id"),
        Index("ix_studio_cards_owner", "owner_user_id"),
    )

    def __repr__(self) -> str:
        return f"<StudioCard id={self.id} title={self.title!r} status={self.status}>"


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------
class StudioDashboard(Base):
    __tablename__ = "studio_dashboards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    client_id: Mapped[int | None] = mapped_column(Integer, default=None)
    profile_id: Mapped[int | None] = mapped_column(Integer, default=None)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    layout_type: Mapped[str] = mapped_column(String(50), nullable=False, default="grid")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DashboardStatus.DRAFT.value
    )
    layout_json: Mapped[str | None] = mapped_column(Text, default=None)
    refresh_policy_json: Mapped[str | None] = mapped_column(Text, default=None)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    cards: Mapped[list[StudioDashboardCard]] = relationship(
        back_populates="dashboard",
        order_by="StudioDashboardCard.order_index",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_studio_dashboards_scope_client", "scope", "client_id"),
        Index("ix_studio_dashboards_scope_profile", "scope", "profile_id"),
    )

    def __repr__(self) -> str:
        return f"<StudioDashboard id={self.id} name={self.name!r} status={self.status}>"


class StudioDashboardCard(Base):
    """Placement of a card on a dashboard grid.

    ``order_index`` mirrors the array position of the last save; the whole
    set is replaced whenever a dashboard update carries cards.
    """
    __tablename__ = "studio_dashboard_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dashboard_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("studio_dashboards.id", ondelete="CASCADE"), nullable=False
    )
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("studio_cards.id"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String(200), default=None)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    show_title: Mapped[bool] = mapped_column(Boolean, default=True)
    show_description: Mapped[bool] = mapped_column(Boolean, default=True)
    integration_id: Mapped[int | None] = mapped_column(Integer, default=None)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position_x: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position_y: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    width: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    height: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    layout_json: Mapped[str | None] = mapped_column(Text, default=None)
    refresh_policy_json: Mapped[str | None] = mapped_column(Text, default=None)
    data_source_json: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    dashboard: Mapped[StudioDashboard] = relationship(back_populates="cards")

    __table_args__ = (
        Index("ix_studio_dashboard_cards_dashboard", "dashboard_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StudioDashboardCard dashboard={self.dashboard_id} "
            f"card={self.card_id} order={self.order_index}>"
        )


# ---------------------------------------------------------------------------
# Shares
# ---------------------------------------------------------------------------
class StudioShare(Base):
    __tablename__ = "studio_shares"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    subject_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_id: Mapped[int] = mapped_column(Integer, nullable=False)
    access_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ShareAccess.VIEW.value
    )
    shared_by_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "target_type", "target_id", "subject_type", "subject_id",
            name="uq_studio_shares_target_subject",
        ),
        Index("ix_studio_shares_subject", "subject_type", "subject_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StudioShare {self.target_type}:{self.target_id} → "
            f"{self.subject_type}:{self.subject_id} ({self.access_level})>"
        )


# ---------------------------------------------------------------------------
# External tables (read-only)
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


class UserGroupLink(Base):
    """Membership of a user in a group."""
    __tablename__ = "user_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    group_id: Mapped[int] = mapped_column(Integer, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("ix_user_groups_user", "user_id"),
    )


class Integration(Base):
    """A configured connection to an external data platform.

    ``type`` and ``owner_type`` are text, but rows written by older versions
    of the integration service hold the numeric enum codes instead of names.
    """
    __tablename__ = "integrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    type: Mapped[str | None] = mapped_column(String(50), default=None)
    owner_type: Mapped[str | None] = mapped_column(String(20), default=None)
    client_id: Mapped[int | None] = mapped_column(Integer, default=None)
    profile_id: Mapped[int | None] = mapped_column(Integer, default=None)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<Integration id={self.id} type={self.type!r} owner={self.owner_type!r}>"
