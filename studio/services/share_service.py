"""
studio.services.share_service — Card & Dashboard Shares
========================================================

One share row per (target, subject) pair; sharing again changes the access
level in place.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from studio.database.models import ShareTarget, StudioShare
from studio.errors import NotFoundError
from studio.schemas import ShareDetail, ShareRequest

logger = logging.getLogger(__name__)


def list_shares(engine, target_type: ShareTarget, target_id: int) -> list[ShareDetail]:
    """Shares on one card or dashboard, newest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(StudioShare)
            .where(
                StudioShare.target_type == target_type.value,
                StudioShare.target_id == target_id,
            )
            .order_by(StudioShare.created_at.desc(), StudioShare.id.desc())
        ).all()
        return [ShareDetail.model_validate(r) for r in rows]


def create_share(engine, request: ShareRequest, user_id: int) -> ShareDetail:
    now = datetime.now(UTC)
    with Session(engine) as session:
        share = session.scalar(
            select(StudioShare).where(
                StudioShare.target_type == request.target_type.value,
                StudioShare.target_id == request.target_id,
                StudioShare.subject_type == request.subject_type.value,
                StudioShare.subject_id == request.subject_id,
            )
        )
        if share is not None:
            share.access_level = request.access_level.value
            share.updated_at = now
        else:
            share = StudioShare(
                target_type=request.target_type.value,
                target_id=request.target_id,
                subject_type=request.subject_type.value,
                subject_id=request.subject_id,
                access_level=request.access_level.value,
                shared_by_user_id=user_id,
                created_at=now,
                updated_at=now,
            )
            session.add(share)
        session.commit()
        session.refresh(share)
        logger.info(
            "%s %d shared with %s %d (%s) by user %d.",
            share.target_type, share.target_id, share.subject_type,
            share.subject_id, share.access_level, user_id,
        )
        return ShareDetail.model_validate(share)


def delete_share(engine, share_id: int) -> None:
    """Hard delete.

    Raises
    ------
    NotFoundError
        No share with that id.
    """
    with Session(engine) as session:
        share = session.get(StudioShare, share_id)
        if share is None:
            raise NotFoundError("Share", share_id)
        session.delete(share)
        session.commit()
