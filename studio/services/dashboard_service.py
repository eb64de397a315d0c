"""
studio.services.dashboard_service — Dashboards & Card Placements
=================================================================

Dashboards are created as empty Draft shells; their placements are written
by :func:`update_dashboard`, which treats the request's ``cards`` list as the
complete new set (delete all, insert all, ``order_index`` = list position).
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from studio.database.models import (
    DashboardStatus,
    StudioDashboard,
    StudioDashboardCard,
    StudioScope,
)
from studio.errors import AuthorizationError, NotFoundError
from studio.schemas import (
    CreateDashboardRequest,
    DashboardCardRequest,
    DashboardDetail,
    DashboardSummary,
    UpdateDashboardRequest,
)
from studio.services.access_service import get_accessible_dashboard_ids
from studio.services.card_service import is_seed_tagged, validate_scope

logger = logging.getLogger(__name__)


def _load_detail(session: Session, dashboard_id: int) -> DashboardDetail | None:
    dashboard = session.scalar(
        select(StudioDashboard)
        .options(selectinload(StudioDashboard.cards))
        .where(StudioDashboard.id == dashboard_id, StudioDashboard.is_deleted.is_(False))
    )
    return DashboardDetail.model_validate(dashboard) if dashboard else None


def _load_live_dashboard(session: Session, dashboard_id: int) -> StudioDashboard:
    dashboard = session.scalar(
        select(StudioDashboard).where(
            StudioDashboard.id == dashboard_id, StudioDashboard.is_deleted.is_(False)
        )
    )
    if dashboard is None:
        raise NotFoundError("Dashboard", dashboard_id)
    return dashboard


def _ensure_can_modify(dashboard: StudioDashboard, user_id: int, is_platform_admin: bool) -> None:
    if not is_platform_admin and dashboard.owner_user_id != user_id:
        raise AuthorizationError()


def _placement(
    dashboard_id: int, index: int, card: DashboardCardRequest, now: datetime
) -> StudioDashboardCard:
    return StudioDashboardCard(
        dashboard_id=dashboard_id,
        card_id=card.card_id,
        title=card.title,
        description=card.description,
        show_title=True if card.show_title is None else card.show_title,
        show_description=True if card.show_description is None else card.show_description,
        integration_id=card.integration_id,
        order_index=index,
        position_x=card.position_x,
        position_y=card.position_y,
        width=card.width,
        height=card.height,
        layout_json=card.layout_json,
        refresh_policy_json=card.refresh_policy_json,
        data_source_json=card.data_source_json,
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_dashboards(
    engine,
    scope: StudioScope | None,
    client_id: int | None,
    profile_id: int | None,
    user_id: int,
    is_platform_admin: bool,
) -> list[DashboardSummary]:
    """Same visibility rule as cards; templates carry ``seedKey`` in layout_json."""
    stmt = select(StudioDashboard).where(StudioDashboard.is_deleted.is_(False))
    if scope is not None:
        stmt = stmt.where(StudioDashboard.scope == scope.value)
    if scope == StudioScope.CLIENT and client_id is not None:
        stmt = stmt.where(StudioDashboard.client_id == client_id)
    if scope == StudioScope.COMPANY and profile_id is not None:
        stmt = stmt.where(StudioDashboard.profile_id == profile_id)
    stmt = stmt.order_by(StudioDashboard.updated_at.desc(), StudioDashboard.id.desc())

    with Session(engine) as session:
        dashboards = list(session.scalars(stmt))
        if not is_platform_admin:
            shared = get_accessible_dashboard_ids(session, user_id)
            dashboards = [
                d for d in dashboards
                if d.owner_user_id == user_id
                or d.id in shared
                or is_seed_tagged(d.layout_json)
            ]
        return [DashboardSummary.model_validate(d) for d in dashboards]


def get_dashboard(engine, dashboard_id: int) -> DashboardDetail | None:
    """Dashboard with its placements in ``order_index`` order."""
    with Session(engine) as session:
        return _load_detail(session, dashboard_id)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_dashboard(engine, request: CreateDashboardRequest, user_id: int) -> DashboardDetail:
    validate_scope(request.scope, request.client_id, request.profile_id)
    now = datetime.now(UTC)
    dashboard = StudioDashboard(
        owner_user_id=user_id,
        scope=request.scope.value,
        client_id=request.client_id,
        profile_id=request.profile_id,
        name=request.name,
        description=request.description,
        layout_type=request.layout_type,
        status=DashboardStatus.DRAFT.value,
        layout_json=request.layout_json,
        refresh_policy_json=request.refresh_policy_json,
        created_at=now,
        updated_at=now,
    )
    with Session(engine) as session:
        session.add(dashboard)
        session.commit()
        logger.info("Dashboard %d created by user %d.", dashboard.id, user_id)
        return _load_detail(session, dashboard.id)


def update_dashboard(
    engine,
    dashboard_id: int,
    request: UpdateDashboardRequest,
    user_id: int,
    is_platform_admin: bool,
) -> DashboardDetail:
    """Coalesce metadata and, when ``cards`` is given, replace all placements.

    Concurrent saves of the same dashboard are last-write-wins.
    """
    now = datetime.now(UTC)
    with Session(engine) as session:
        dashboard = _load_live_dashboard(session, dashboard_id)
        _ensure_can_modify(dashboard, user_id, is_platform_admin)

        for field in ("name", "description", "layout_type", "layout_json", "refresh_policy_json"):
            value = getattr(request, field)
            if value is not None:
                setattr(dashboard, field, value)
        if request.status is not None:
            dashboard.status = request.status.value
        dashboard.updated_at = now

        if request.cards is not None:
            logger.info(
                "Updating dashboard %d with %d cards.", dashboard_id, len(request.cards)
            )
            deleted = session.execute(
                delete(StudioDashboardCard).where(StudioDashboardCard.dashboard_id == dashboard_id)
            ).rowcount
            logger.info("Deleted %d existing placements for dashboard %d.", deleted, dashboard_id)

            session.add_all(
                _placement(dashboard_id, index, card, now)
                for index, card in enumerate(request.cards)
            )
            logger.info(
                "Inserted %d placements for dashboard %d.", len(request.cards), dashboard_id
            )

        session.commit()
        session.expire_all()
        return _load_detail(session, dashboard_id)


def delete_dashboard(engine, dashboard_id: int, user_id: int, is_platform_admin: bool) -> None:
    now = datetime.now(UTC)
    with Session(engine) as session:
        dashboard = _load_live_dashboard(session, dashboard_id)
        _ensure_can_modify(dashboard, user_id, is_platform_admin)
        dashboard.is_deleted = True
        dashboard.deleted_at = now
        dashboard.updated_at = now
        session.commit()
    logger.info("Dashboard %d soft-deleted by user %d.", dashboard_id, user_id)
