"""
studio.services.sample_seeder — Template Card & Dashboard Seeder
=================================================================

Materializes :mod:`studio.services.seed_catalog` for every supported
integration:

1. Probe the database; skip quietly if unreachable.
2. Resolve the bootstrap owner (platform admin, else oldest active user).
3. Backfill defaults into legacy Azure Data Factory data sources.
4. Insert missing template cards (Published, pre-tested).
5. Insert missing template dashboards and their placements.

Idempotent: templates are matched on their ``seedKey`` (case-insensitive),
so re-running inserts nothing new.  Two seeders racing on an empty database
may both insert the same template; that is not guarded.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio.constants import (
    ADF_DEFAULT_ENDPOINT,
    ADF_DEFAULT_METHOD,
    ADF_INTEGRATION_TYPE_NAMES,
    BOOTSTRAP_ADMIN_EMAIL,
    SEED_KEY_PROPERTY,
)
from studio.database.models import (
    CardStatus,
    DashboardStatus,
    StudioCard,
    StudioDashboard,
    StudioDashboardCard,
    StudioScope,
)
from studio.database.repository import (
    IntegrationRef,
    find_bootstrap_user_id,
    list_supported_integrations,
    resolve_scope,
)
from studio.services.seed_catalog import (
    DashboardSeedDefinition,
    SeededCard,
    build_card_definitions,
    build_dashboard_definition,
    to_json,
)
from studio.services.signature import signature_for_card

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SeedReport:
    """What one seeder run changed."""

    cards_created: int = 0
    dashboards_created: int = 0
    placements_created: int = 0
    adf_cards_normalized: int = 0
    adf_placements_normalized: int = 0
    integrations_skipped: int = 0


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------
def read_seed_key(json_text: str | None) -> str | None:
    """The string ``seedKey`` of a JSON object, or ``None``."""
    if not json_text or not json_text.strip():
        return None
    try:
        payload = json.loads(json_text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    value = payload.get(SEED_KEY_PROPERTY)
    return value if isinstance(value, str) else None


def _has_key(payload: dict, key: str) -> bool:
    lowered = key.lower()
    return any(str(k).lower() == lowered for k in payload)


def ensure_adf_defaults(data_source_json: str | None, seed_key: str | None) -> str | None:
    """Add ``endpoint``/``method`` (and ``seedKey`` when given) to an ADF data
    source that lacks them.  Anything else is returned unchanged, byte for
    byte."""
    if not data_source_json or not data_source_json.strip():
        return data_source_json
    try:
        payload = json.loads(data_source_json)
    except ValueError:
        return data_source_json
    if not isinstance(payload, dict):
        return data_source_json

    integration_type = payload.get("integrationType")
    if integration_type is None or isinstance(integration_type, (dict, list)):
        return data_source_json
    if str(integration_type).lower() not in ADF_INTEGRATION_TYPE_NAMES:
        return data_source_json

    updated = False
    if not _has_key(payload, "endpoint"):
        payload["endpoint"] = ADF_DEFAULT_ENDPOINT
        updated = True
    if not _has_key(payload, "method"):
        payload["method"] = ADF_DEFAULT_METHOD
        updated = True
    if seed_key and seed_key.strip() and not _has_key(payload, SEED_KEY_PROPERTY):
        payload[SEED_KEY_PROPERTY] = seed_key
        updated = True

    return to_json(payload) if updated else data_source_json


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------
def _normalize_adf_sources(session: Session, now: datetime, report: SeedReport) -> None:
    cards = session.scalars(
        select(StudioCard).where(
            StudioCard.is_deleted.is_(False), StudioCard.data_source_json.is_not(None)
        )
    ).all()
    for card in cards:
        updated = ensure_adf_defaults(card.data_source_json, read_seed_key(card.data_source_json))
        if updated != card.data_source_json:
            card.data_source_json = updated
            card.updated_at = now
            report.adf_cards_normalized += 1

    placements = session.scalars(
        select(StudioDashboardCard).where(StudioDashboardCard.data_source_json.is_not(None))
    ).all()
    for placement in placements:
        updated = ensure_adf_defaults(placement.data_source_json, None)
        if updated != placement.data_source_json:
            placement.data_source_json = updated
            placement.updated_at = now
            report.adf_placements_normalized += 1

    if report.adf_cards_normalized or report.adf_placements_normalized:
        logger.info(
            "Studio seeding: normalized ADF data sources for %d cards and %d dashboard cards.",
            report.adf_cards_normalized, report.adf_placements_normalized,
        )
        session.commit()


def _existing_seed_keys(session: Session, model, column) -> set[str]:
    payloads = session.scalars(select(column).where(model.is_deleted.is_(False))).all()
    keys = set()
    for payload in payloads:
        seed = read_seed_key(payload)
        if seed and seed.strip():
            keys.add(seed.lower())
    return keys


def _cards_by_seed_key(session: Session) -> dict[str, SeededCard]:
    rows = session.execute(
        select(StudioCard.id, StudioCard.title, StudioCard.description, StudioCard.data_source_json)
        .where(StudioCard.is_deleted.is_(False))
        .order_by(StudioCard.id)
    ).all()
    result: dict[str, SeededCard] = {}
    for row in rows:
        seed = read_seed_key(row.data_source_json)
        if seed and seed.strip():
            result[seed.lower()] = SeededCard(row.id, row.title, row.description, row.data_source_json)
    return result


def _scope_columns(scope: StudioScope, tenant_id: int) -> dict:
    if scope == StudioScope.CLIENT:
        return {"scope": scope.value, "client_id": tenant_id, "profile_id": None}
    return {"scope": scope.value, "client_id": None, "profile_id": tenant_id}


def _seed_cards(
    session: Session,
    integrations: list[tuple[IntegrationRef, StudioScope, int]],
    owner_id: int,
    now: datetime,
) -> int:
    existing = _existing_seed_keys(session, StudioCard, StudioCard.data_source_json)
    new_cards: list[StudioCard] = []

    for integration, scope, tenant_id in integrations:
        for definition in build_card_definitions(integration):
            if definition.seed_key.lower() in existing:
                continue
            card = StudioCard(
                owner_user_id=owner_id,
                **_scope_columns(scope, tenant_id),
                title=definition.title,
                description=definition.description,
                card_type=definition.card_type,
                layout_type=definition.layout_type,
                status=CardStatus.PUBLISHED.value,
                integration_id=integration.id,
                query=definition.query,
                fields_json=to_json(definition.fields),
                style_json=to_json(definition.style),
                layout_json=to_json(definition.layout),
                refresh_policy_json=to_json(definition.refresh_policy),
                data_source_json=to_json(definition.data_source),
                last_tested_at=now,
                last_test_succeeded=True,
                created_at=now,
                updated_at=now,
            )
            card.last_test_signature = signature_for_card(card)
            new_cards.append(card)
            existing.add(definition.seed_key.lower())

    if new_cards:
        session.add_all(new_cards)
        session.commit()
        logger.info("Studio seeding: inserted %d template cards.", len(new_cards))
    return len(new_cards)


def _seed_dashboards(
    session: Session,
    integrations: list[tuple[IntegrationRef, StudioScope, int]],
    owner_id: int,
    now: datetime,
) -> tuple[int, int]:
    cards_by_seed = _cards_by_seed_key(session)
    existing = _existing_seed_keys(session, StudioDashboard, StudioDashboard.layout_json)
    pending: list[tuple[StudioDashboard, DashboardSeedDefinition]] = []

    for integration, scope, tenant_id in integrations:
        definition = build_dashboard_definition(integration, cards_by_seed)
        if definition is None or definition.seed_key.lower() in existing:
            continue
        dashboard = StudioDashboard(
            owner_user_id=owner_id,
            **_scope_columns(scope, tenant_id),
            name=definition.name,
            description=definition.description,
            layout_type="grid",
            status=DashboardStatus.PUBLISHED.value,
            layout_json=to_json(definition.layout),
            refresh_policy_json=to_json(definition.refresh_policy),
            created_at=now,
            updated_at=now,
        )
        pending.append((dashboard, definition))
        existing.add(definition.seed_key.lower())

    if not pending:
        return 0, 0

    session.add_all(dashboard for dashboard, _ in pending)
    session.flush()  # dashboard ids for the placements

    placements = 0
    for dashboard, definition in pending:
        for index, card in enumerate(definition.cards):
            session.add(StudioDashboardCard(
                dashboard_id=dashboard.id,
                card_id=card.card_id,
                title=card.title,
                description=card.description,
                show_title=card.show_title,
                show_description=card.show_description,
                integration_id=definition.integration_id,
                order_index=index,
                position_x=card.position_x,
                position_y=card.position_y,
                width=card.width,
                height=card.height,
                refresh_policy_json=to_json(
                    {"mode": card.refresh_mode, "interval": card.refresh_interval}
                ),
                data_source_json=card.data_source_json,
                created_at=now,
                updated_at=now,
            ))
            placements += 1

    session.commit()
    logger.info(
        "Studio seeding: inserted %d template dashboards with %d placements.",
        len(pending), placements,
    )
    return len(pending), placements


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def seed_studio_samples(
    engine, admin_email: str = BOOTSTRAP_ADMIN_EMAIL, now: datetime | None = None
) -> SeedReport:
    """Seed the template library.  Safe to call on every startup.

    Database errors are logged and swallowed; the returned report then
    reflects only what was committed before the failure.
    """
    report = SeedReport()
    now = now or datetime.now(UTC)

    try:
        with Session(engine) as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Studio seeding skipped: database is not reachable (%s).", exc)
        return report

    try:
        with Session(engine) as session:
            owner_id = find_bootstrap_user_id(session, admin_email)
            if owner_id is None:
                logger.warning("Studio seeding skipped: no active users found.")
                return report

            _normalize_adf_sources(session, now, report)

            integrations = list_supported_integrations(session)
            if not integrations:
                logger.info(
                    "Studio seeding: no Airflow, Databricks, ADF, or Synapse integrations found."
                )

            scoped: list[tuple[IntegrationRef, StudioScope, int]] = []
            for integration in integrations:
                resolved = resolve_scope(integration)
                if resolved is None:
                    logger.warning(
                        "Studio seeding skipped integration %d: unsupported owner type "
                        "or missing scope ids.",
                        integration.id,
                    )
                    report.integrations_skipped += 1
                    continue
                scoped.append((integration, *resolved))

            report.cards_created = _seed_cards(session, scoped, owner_id, now)
            report.dashboards_created, report.placements_created = _seed_dashboards(
                session, scoped, owner_id, now
            )
    except SQLAlchemyError:
        logger.exception("Studio seeding failed.")

    return report
