"""
studio.services.access_service — Share-Based Visibility
========================================================

Answers "which cards / dashboards were shared with this user", either
directly or through any group the user belongs to.  Ownership and the
template rule (seed-tagged rows are visible to everyone) are applied by the
card and dashboard services on top of these sets.
"""

from __future__ import annotations

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.orm import Session

from studio.database.models import (
    ShareSubject,
    ShareTarget,
    StudioCard,
    StudioDashboard,
    StudioShare,
    UserGroupLink,
)


def _group_ids(session: Session, user_id: int) -> list[int]:
    return list(session.scalars(
        select(UserGroupLink.group_id)
        .where(UserGroupLink.user_id == user_id, UserGroupLink.is_deleted.is_(False))
        .distinct()
    ))


def _shared_target_ids(session: Session, target: ShareTarget, user_id: int) -> set[int]:
    group_ids = _group_ids(session, user_id)
    subject_match = and_(
        StudioShare.subject_type == ShareSubject.USER.value,
        StudioShare.subject_id == user_id,
    )
    if group_ids:
        subject_match = or_(
            subject_match,
            and_(
                StudioShare.subject_type == ShareSubject.GROUP.value,
                StudioShare.subject_id.in_(group_ids),
            ),
        )

    return set(session.scalars(
        select(StudioShare.target_id)
        .where(StudioShare.target_type == target.value, subject_match)
        .distinct()
    ))


# ---------------------------------------------------------------------------
# Shared id sets (called inside an open session)
# ---------------------------------------------------------------------------
def get_accessible_card_ids(session: Session, user_id: int) -> set[int]:
    return _shared_target_ids(session, ShareTarget.CARD, user_id)


def get_accessible_dashboard_ids(session: Session, user_id: int) -> set[int]:
    return _shared_target_ids(session, ShareTarget.DASHBOARD, user_id)


# ---------------------------------------------------------------------------
# Point checks
# ---------------------------------------------------------------------------
def can_access_card(engine, card_id: int, user_id: int, is_platform_admin: bool) -> bool:
    """Admin, owner of the (non-deleted) card, or a share recipient."""
    if is_platform_admin:
        return True

    with Session(engine) as session:
        owns = session.scalar(select(exists().where(
            StudioCard.id == card_id,
            StudioCard.is_deleted.is_(False),
            StudioCard.owner_user_id == user_id,
        )))
        if owns:
            return True
        return card_id in get_accessible_card_ids(session, user_id)


def can_access_dashboard(engine, dashboard_id: int, user_id: int, is_platform_admin: bool) -> bool:
    if is_platform_admin:
        return True

    with Session(engine) as session:
        owns = session.scalar(select(exists().where(
            StudioDashboard.id == dashboard_id,
            StudioDashboard.is_deleted.is_(False),
            StudioDashboard.owner_user_id == user_id,
        )))
        if owns:
            return True
        return dashboard_id in get_accessible_dashboard_ids(session, user_id)
