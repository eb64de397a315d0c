"""
tests/conftest.py — Shared Test Fixtures
=========================================

In-memory SQLite engine with every Studio table, plus small row factories
for the external tables (users, groups, integrations) the services read.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from studio.database.engine import get_session
from studio.database.models import (
    Base,
    CardStatus,
    Integration,
    StudioCard,
    StudioScope,
    User,
    UserGroupLink,
)

EPOCH = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Studio tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Row factories, usable from any test that has an engine
# ---------------------------------------------------------------------------
def add_user(engine: Engine, email: str, *, age_days: int = 0, is_deleted: bool = False) -> int:
    """Insert a user created *age_days* after EPOCH; returns its id."""
    with get_session(engine) as session:
        user = User(
            email=email,
            is_deleted=is_deleted,
            created_at=EPOCH + timedelta(days=age_days),
        )
        session.add(user)
        session.flush()
        return user.id


def add_group_membership(engine: Engine, user_id: int, group_id: int, *, is_deleted: bool = False) -> None:
    with get_session(engine) as session:
        session.add(UserGroupLink(user_id=user_id, group_id=group_id, is_deleted=is_deleted))
        session.flush()


def add_integration(
    engine: Engine,
    type_: str | None,
    owner_type: str | None,
    *,
    id: int | None = None,
    client_id: int | None = None,
    profile_id: int | None = None,
    name: str = "integration",
    is_deleted: bool = False,
) -> int:
    with get_session(engine) as session:
        row = Integration(
            id=id,
            type=type_,
            owner_type=owner_type,
            client_id=client_id,
            profile_id=profile_id,
            name=name,
            is_deleted=is_deleted,
        )
        session.add(row)
        session.flush()
        return row.id


def add_card(
    engine: Engine,
    owner_user_id: int,
    *,
    title: str = "Card",
    scope: StudioScope = StudioScope.CLIENT,
    client_id: int | None = 1,
    profile_id: int | None = None,
    status: CardStatus = CardStatus.DRAFT,
    data_source_json: str | None = None,
    updated_at: datetime | None = None,
    **fields,
) -> int:
    """Insert a card row directly, bypassing the test gate."""
    ts = updated_at or datetime.now(UTC)
    with get_session(engine) as session:
        card = StudioCard(
            owner_user_id=owner_user_id,
            scope=scope.value,
            client_id=client_id,
            profile_id=profile_id,
            title=title,
            status=status.value,
            data_source_json=data_source_json,
            created_at=ts,
            updated_at=ts,
            **fields,
        )
        session.add(card)
        session.flush()
        return card.id
