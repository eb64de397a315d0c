"""
studio.schemas — Request & Response Models
===========================================

Pydantic models exchanged with the (external) HTTP host.  Response models
are built straight from ORM rows via ``model_validate(row)``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from studio.database.models import (
    CardStatus,
    DashboardStatus,
    ShareAccess,
    ShareSubject,
    ShareTarget,
    StudioScope,
)


class _FromRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------
class CreateCardRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    scope: StudioScope
    client_id: int | None = None
    profile_id: int | None = None
    card_type: str = ""
    layout_type: str = ""
    integration_id: int | None = None
    query: str | None = None
    fields_json: str | None = None
    style_json: str | None = None
    layout_json: str | None = None
    refresh_policy_json: str | None = None
    data_source_json: str | None = None
    # Evidence of a successful test, as returned by the test endpoint
    test_signature: str | None = None
    tested_at: datetime | None = None


class UpdateCardRequest(BaseModel):
    """Partial update: ``None`` keeps the stored value."""

    title: str | None = None
    description: str | None = None
    status: CardStatus | None = None
    card_type: str | None = None
    layout_type: str | None = None
    integration_id: int | None = None
    query: str | None = None
    fields_json: str | None = None
    style_json: str | None = None
    layout_json: str | None = None
    refresh_policy_json: str | None = None
    data_source_json: str | None = None
    test_signature: str | None = None
    tested_at: datetime | None = None


class CardTestRequest(BaseModel):
    integration_id: int | None = None
    query: str | None = None
    card_type: str | None = None
    layout_type: str | None = None
    fields_json: str | None = None
    style_json: str | None = None
    layout_json: str | None = None
    refresh_policy_json: str | None = None
    data_source_json: str | None = None


class CardTestResult(BaseModel):
    success: bool
    error_message: str | None = None
    signature: str | None = None
    execution_time_ms: float | None = None


class CardSummary(_FromRow):
    id: int
    title: str
    card_type: str
    layout_type: str
    status: CardStatus
    scope: StudioScope
    client_id: int | None
    profile_id: int | None
    integration_id: int | None
    created_at: datetime
    updated_at: datetime
    last_tested_at: datetime | None
    last_test_succeeded: bool


class CardDetail(CardSummary):
    description: str | None
    query: str | None
    fields_json: str | None
    style_json: str | None
    layout_json: str | None
    refresh_policy_json: str | None
    data_source_json: str | None
    last_test_signature: str | None


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------
class CreateDashboardRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    scope: StudioScope
    client_id: int | None = None
    profile_id: int | None = None
    layout_type: str = "grid"
    layout_json: str | None = None
    refresh_policy_json: str | None = None


class DashboardCardRequest(BaseModel):
    """One placement in a dashboard save.

    ``id`` and ``order_index`` are accepted for client convenience but
    ignored: placements are recreated and ordered by array position.
    """

    id: int | None = None
    card_id: int
    title: str | None = None
    description: str | None = None
    show_title: bool | None = None
    show_description: bool | None = None
    integration_id: int | None = None
    order_index: int = 0
    position_x: int = 0
    position_y: int = 0
    width: int = Field(default=4, ge=1)
    height: int = Field(default=2, ge=1)
    layout_json: str | None = None
    refresh_policy_json: str | None = None
    data_source_json: str | None = None


class UpdateDashboardRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    status: DashboardStatus | None = None
    layout_type: str | None = None
    layout_json: str | None = None
    refresh_policy_json: str | None = None
    # None leaves placements alone; [] removes them all
    cards: list[DashboardCardRequest] | None = None


class DashboardSummary(_FromRow):
    id: int
    name: str
    status: DashboardStatus
    scope: StudioScope
    client_id: int | None
    profile_id: int | None
    layout_type: str
    created_at: datetime
    updated_at: datetime


class DashboardCardDetail(_FromRow):
    id: int
    card_id: int
    title: str | None
    description: str | None
    show_title: bool
    show_description: bool
    integration_id: int | None
    order_index: int
    position_x: int
    position_y: int
    width: int
    height: int
    layout_json: str | None
    refresh_policy_json: str | None
    data_source_json: str | None


class DashboardDetail(DashboardSummary):
    description: str | None
    layout_json: str | None
    refresh_policy_json: str | None
    cards: list[DashboardCardDetail] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Shares
# ---------------------------------------------------------------------------
class ShareRequest(BaseModel):
    target_type: ShareTarget
    target_id: int
    subject_type: ShareSubject
    subject_id: int
    access_level: ShareAccess = ShareAccess.VIEW


class ShareDetail(_FromRow):
    id: int
    target_type: ShareTarget
    target_id: int
    subject_type: ShareSubject
    subject_id: int
    access_level: ShareAccess
    created_at: datetime
