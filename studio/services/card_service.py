"""
studio.services.card_service — Test-Gated Card Persistence
===========================================================

CRUD for Studio cards.  A card that has both an integration and a query must
be *tested* (the query run once against the integration service) before it
can be saved.  The test endpoint returns a signature of the configuration it
ran; the save request echoes that signature and the test time back, and the
save is accepted only when the signature matches what is being saved and the
test is recent (:data:`~studio.constants.TEST_FRESHNESS_WINDOW`).

Updates that leave the integration and query untouched may ride on the
card's previous successful test; blob edits (style, layout, fields) do not
force a re-test.

All write functions take an ``engine`` and open their own session; async
callers go through :func:`studio.database.engine.run_db`.  :func:`test_card`
is natively async because it performs network I/O.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from studio.constants import (
    CLONE_TITLE_PREFIX,
    SEED_KEY_MARKER,
    TEST_FRESHNESS_WINDOW,
    TEST_INPUTS_REQUIRED,
    TEST_REQUIRED_ON_CREATE,
    TEST_REQUIRED_ON_UPDATE,
)
from studio.database.models import CardStatus, StudioCard, StudioScope
from studio.errors import (
    AuthorizationError,
    NotFoundError,
    StudioValidationError,
    TestRequiredError,
)
from studio.schemas import (
    CardDetail,
    CardSummary,
    CardTestRequest,
    CardTestResult,
    CreateCardRequest,
    UpdateCardRequest,
)
from studio.services.access_service import get_accessible_card_ids
from studio.services.integration_client import IntegrationQueryClient
from studio.services.signature import compute_signature, signature_for_card, signatures_match

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Policy helpers
# ---------------------------------------------------------------------------
def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite and some clients drop tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def requires_test(integration_id: int | None, query: str | None) -> bool:
    return integration_id is not None and bool(query and query.strip())


def is_valid_test_assertion(
    signature: str,
    asserted_signature: str | None,
    tested_at: datetime | None,
    now: datetime | None = None,
    *,
    window: timedelta = TEST_FRESHNESS_WINDOW,
) -> bool:
    """True when the asserted test covers *signature* and is still fresh.

    The window boundary is inclusive: a test exactly *window* old passes.
    """
    if not asserted_signature or not asserted_signature.strip() or tested_at is None:
        return False
    now = as_utc(now or datetime.now(UTC))
    if as_utc(tested_at) < now - window:
        return False
    return signatures_match(signature, asserted_signature)


def validate_scope(scope: StudioScope, client_id: int | None, profile_id: int | None) -> None:
    """Client-scoped rows need a client id, company-scoped rows a profile id."""
    if scope == StudioScope.CLIENT and client_id is None:
        raise StudioValidationError("ClientId is required for client scope.")
    if scope == StudioScope.COMPANY and profile_id is None:
        raise StudioValidationError("ProfileId is required for company scope.")


def is_seed_tagged(json_text: str | None) -> bool:
    return bool(json_text) and SEED_KEY_MARKER in json_text


def _visible_cards(
    session: Session, cards: list[StudioCard], user_id: int, is_platform_admin: bool
) -> list[StudioCard]:
    if is_platform_admin:
        return cards
    shared = get_accessible_card_ids(session, user_id)
    return [
        c for c in cards
        if c.owner_user_id == user_id
        or c.id in shared
        or is_seed_tagged(c.data_source_json)
    ]


def _load_live_card(session: Session, card_id: int) -> StudioCard:
    card = session.scalar(
        select(StudioCard).where(StudioCard.id == card_id, StudioCard.is_deleted.is_(False))
    )
    if card is None:
        raise NotFoundError("Card", card_id)
    return card


def _ensure_can_modify(card: StudioCard, user_id: int, is_platform_admin: bool) -> None:
    if not is_platform_admin and card.owner_user_id != user_id:
        raise AuthorizationError()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_cards(
    engine,
    scope: StudioScope | None,
    client_id: int | None,
    profile_id: int | None,
    user_id: int,
    is_platform_admin: bool,
) -> list[CardSummary]:
    """Non-deleted cards for a tenant scope, newest first.

    Non-admins see their own cards, cards shared with them, and seeded
    templates.
    """
    stmt = select(StudioCard).where(StudioCard.is_deleted.is_(False))
    if scope is not None:
        stmt = stmt.where(StudioCard.scope == scope.value)
    if scope == StudioScope.CLIENT and client_id is not None:
        stmt = stmt.where(StudioCard.client_id == client_id)
    if scope == StudioScope.COMPANY and profile_id is not None:
        stmt = stmt.where(StudioCard.profile_id == profile_id)
    stmt = stmt.order_by(StudioCard.updated_at.desc(), StudioCard.id.desc())

    with Session(engine) as session:
        cards = list(session.scalars(stmt))
        visible = _visible_cards(session, cards, user_id, is_platform_admin)
        return [CardSummary.model_validate(c) for c in visible]


def get_templates(
    engine, integration_id: int | None, user_id: int, is_platform_admin: bool
) -> list[CardSummary]:
    """Published cards usable as templates, optionally for one integration."""
    stmt = select(StudioCard).where(
        StudioCard.is_deleted.is_(False),
        StudioCard.status == CardStatus.PUBLISHED.value,
    )
    if integration_id is not None:
        stmt = stmt.where(StudioCard.integration_id == integration_id)
    stmt = stmt.order_by(StudioCard.integration_id, StudioCard.card_type, StudioCard.title)

    with Session(engine) as session:
        cards = list(session.scalars(stmt))
        visible = _visible_cards(session, cards, user_id, is_platform_admin)
        return [CardSummary.model_validate(c) for c in visible]


def get_card(engine, card_id: int) -> CardDetail | None:
    with Session(engine) as session:
        card = session.scalar(
            select(StudioCard).where(StudioCard.id == card_id, StudioCard.is_deleted.is_(False))
        )
        return CardDetail.model_validate(card) if card else None


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_card(
    engine, request: CreateCardRequest, user_id: int, now: datetime | None = None
) -> CardDetail:
    """Persist a new Draft card owned by *user_id*.

    Raises
    ------
    TestRequiredError
        The card has an integration and a query but no matching fresh test.
    StudioValidationError
        The scope is missing its tenant id.
    """
    validate_scope(request.scope, request.client_id, request.profile_id)
    now = now or datetime.now(UTC)

    signature = compute_signature(
        request.integration_id, request.query, request.card_type, request.layout_type,
        request.fields_json, request.style_json, request.layout_json,
        request.refresh_policy_json, request.data_source_json,
    )
    needs_test = requires_test(request.integration_id, request.query)
    if needs_test and not is_valid_test_assertion(
        signature, request.test_signature, request.tested_at, now
    ):
        raise TestRequiredError(TEST_REQUIRED_ON_CREATE)

    card = StudioCard(
        owner_user_id=user_id,
        scope=request.scope.value,
        client_id=request.client_id,
        profile_id=request.profile_id,
        title=request.title,
        description=request.description,
        card_type=request.card_type,
        layout_type=request.layout_type,
        status=CardStatus.DRAFT.value,
        integration_id=request.integration_id,
        query=request.query,
        fields_json=request.fields_json,
        style_json=request.style_json,
        layout_json=request.layout_json,
        refresh_policy_json=request.refresh_policy_json,
        data_source_json=request.data_source_json,
        last_tested_at=as_utc(request.tested_at) if needs_test else None,
        last_test_succeeded=needs_test,
        last_test_signature=signature if needs_test else None,
        created_at=now,
        updated_at=now,
    )

    with Session(engine) as session:
        session.add(card)
        session.commit()
        session.refresh(card)
        logger.info("Card %d created by user %d (tested=%s).", card.id, user_id, needs_test)
        return CardDetail.model_validate(card)


def update_card(
    engine,
    card_id: int,
    request: UpdateCardRequest,
    user_id: int,
    is_platform_admin: bool,
    now: datetime | None = None,
) -> CardDetail:
    """Apply a partial update; ``None`` fields keep their stored value.

    A re-test is demanded only when the integration/query pair changed or
    the card has no successful test on record.  A valid fresh test in the
    request always restamps the test state.  Cards without integration or
    query are reset to untested.
    """
    now = now or datetime.now(UTC)

    with Session(engine) as session:
        card = _load_live_card(session, card_id)
        _ensure_can_modify(card, user_id, is_platform_admin)

        original_integration_id = card.integration_id
        original_query = card.query

        for field in (
            "title", "description", "card_type", "layout_type", "integration_id",
            "query", "fields_json", "style_json", "layout_json",
            "refresh_policy_json", "data_source_json",
        ):
            value = getattr(request, field)
            if value is not None:
                setattr(card, field, value)
        if request.status is not None:
            card.status = request.status.value

        signature = signature_for_card(card)

        if requires_test(card.integration_id, card.query):
            query_changed = (
                original_integration_id != card.integration_id or original_query != card.query
            )
            has_valid_existing = card.last_test_succeeded and signatures_match(
                card.last_test_signature, signature
            )
            has_new_valid = is_valid_test_assertion(
                signature, request.test_signature, request.tested_at, now
            )

            if (query_changed or not card.last_test_succeeded) and not (
                has_valid_existing or has_new_valid
            ):
                raise TestRequiredError(TEST_REQUIRED_ON_UPDATE)

            if has_new_valid:
                card.last_tested_at = as_utc(request.tested_at)
                card.last_test_succeeded = True
                card.last_test_signature = signature
        else:
            card.last_tested_at = None
            card.last_test_succeeded = False
            card.last_test_signature = None

        card.updated_at = now
        session.commit()
        session.refresh(card)
        return CardDetail.model_validate(card)


def delete_card(engine, card_id: int, user_id: int, is_platform_admin: bool) -> None:
    """Soft-delete: the row stays, flagged ``is_deleted``."""
    now = datetime.now(UTC)
    with Session(engine) as session:
        card = _load_live_card(session, card_id)
        _ensure_can_modify(card, user_id, is_platform_admin)
        card.is_deleted = True
        card.deleted_at = now
        card.updated_at = now
        session.commit()
    logger.info("Card %d soft-deleted by user %d.", card_id, user_id)


def clone_card(engine, card_id: int, user_id: int) -> CardDetail:
    """Copy a card (typically a template) into an untested Draft.

    The copy is detached from its integration and data source, so it must be
    re-pointed and tested before it can run a query.
    """
    now = datetime.now(UTC)
    with Session(engine) as session:
        original = _load_live_card(session, card_id)
        card = StudioCard(
            owner_user_id=user_id,
            scope=original.scope,
            client_id=original.client_id,
            profile_id=original.profile_id,
            title=f"{CLONE_TITLE_PREFIX}{original.title}",
            description=original.description,
            card_type=original.card_type,
            layout_type=original.layout_type,
            status=CardStatus.DRAFT.value,
            integration_id=None,
            query=original.query,
            fields_json=original.fields_json,
            style_json=original.style_json,
            layout_json=original.layout_json,
            refresh_policy_json=original.refresh_policy_json,
            data_source_json=None,
            last_tested_at=None,
            last_test_succeeded=False,
            last_test_signature=None,
            created_at=now,
            updated_at=now,
        )
        session.add(card)
        session.commit()
        session.refresh(card)
        logger.info("Card %d cloned from %d by user %d.", card.id, card_id, user_id)
        return CardDetail.model_validate(card)


# ---------------------------------------------------------------------------
# Test query
# ---------------------------------------------------------------------------
async def test_card(
    request: CardTestRequest, bearer_token: str | None, client: IntegrationQueryClient
) -> CardTestResult:
    """Run the card's query once and, on success, return its signature.

    Missing inputs and integration failures are reported in the result,
    never raised.
    """
    if request.integration_id is None or not (request.query and request.query.strip()):
        return CardTestResult(success=False, error_message=TEST_INPUTS_REQUIRED)

    result = await client.execute_query(request.integration_id, request.query, bearer_token)
    if not result.success:
        return CardTestResult(
            success=False,
            error_message=result.error_message,
            execution_time_ms=result.execution_time_ms,
        )

    signature = compute_signature(
        request.integration_id,
        request.query,
        request.card_type or "",
        request.layout_type or "",
        request.fields_json,
        request.style_json,
        request.layout_json,
        request.refresh_policy_json,
        request.data_source_json,
    )
    return CardTestResult(
        success=True, signature=signature, execution_time_ms=result.execution_time_ms
    )
