"""
studio.database.repository — Bootstrap User & Integration Discovery
====================================================================

Read-only queries against tables Studio does not own (``users``,
``integrations``), plus the normalization of the legacy text/integer
encodings those tables still carry.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from studio.constants import (
    INTEGRATION_TYPE_ALIASES,
    LEGACY_INTEGRATION_TYPE_CODES,
    LEGACY_OWNER_TYPE_CODES,
    LEGACY_OWNER_TYPE_FALLBACK,
    SEED_BASE_BY_TYPE,
    SUPPORTED_INTEGRATION_TYPES,
)
from studio.database.models import Integration, StudioScope, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IntegrationRef:
    """A supported integration as seen by the seeder."""

    id: int
    type: str
    owner_type: str
    client_id: int | None
    profile_id: int | None
    name: str
    seed_key: str


# ---------------------------------------------------------------------------
# Legacy encodings
# ---------------------------------------------------------------------------
_INT32_TEXT = re.compile(r"[+-]?[0-9]+")
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1


def _as_int(raw: str) -> int | None:
    """Parse a stored enum code: ASCII digits only, within 32-bit range."""
    if not _INT32_TEXT.fullmatch(raw):
        return None
    code = int(raw)
    if not _INT32_MIN <= code <= _INT32_MAX:
        return None
    return code


def normalize_integration_type(raw: str | None) -> str:
    """Map a stored integration type to its canonical name.

    >>> normalize_integration_type("2")
    'Airflow'
    >>> normalize_integration_type("adf")
    'AzureDataFactory'
    """
    value = (raw or "").strip()
    if not value:
        return ""

    code = _as_int(value)
    if code is not None:
        return LEGACY_INTEGRATION_TYPE_CODES.get(code, value)

    alias = INTEGRATION_TYPE_ALIASES.get(value.lower())
    if alias:
        return alias

    if len(value) == 1:
        return value.upper()
    return value[0].upper() + value[1:].lower()


def normalize_owner_type(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        return ""

    code = _as_int(value)
    if code is not None:
        return LEGACY_OWNER_TYPE_CODES.get(code, LEGACY_OWNER_TYPE_FALLBACK)
    return value.lower()


def resolve_scope(integration: IntegrationRef) -> tuple[StudioScope, int] | None:
    """Return ``(scope, tenant_id)`` for an integration, or ``None`` when the
    owner type is unknown or the matching tenant id is missing."""
    if integration.owner_type == "client" and integration.client_id is not None:
        return StudioScope.CLIENT, integration.client_id
    if integration.owner_type == "company" and integration.profile_id is not None:
        return StudioScope.COMPANY, integration.profile_id
    return None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def find_bootstrap_user_id(session: Session, admin_email: str) -> int | None:
    """The platform admin account if present, else the oldest active user."""
    admin_id = session.scalar(
        select(User.id)
        .where(User.is_deleted.is_(False), User.email == admin_email)
        .order_by(User.created_at, User.id)
        .limit(1)
    )
    if admin_id is not None:
        return admin_id

    return session.scalar(
        select(User.id)
        .where(User.is_deleted.is_(False))
        .order_by(User.created_at, User.id)
        .limit(1)
    )


def list_supported_integrations(session: Session) -> list[IntegrationRef]:
    rows = session.scalars(
        select(Integration)
        .where(Integration.is_deleted.is_(False))
        .order_by(Integration.id)
    ).all()

    result: list[IntegrationRef] = []
    for row in rows:
        itype = normalize_integration_type(row.type)
        if itype not in SUPPORTED_INTEGRATION_TYPES:
            logger.debug("Integration %d has unsupported type %r, skipping.", row.id, row.type)
            continue
        result.append(IntegrationRef(
            id=row.id,
            type=itype,
            owner_type=normalize_owner_type(row.owner_type),
            client_id=row.client_id,
            profile_id=row.profile_id,
            name=row.name,
            seed_key=f"{SEED_BASE_BY_TYPE[itype]}-{row.id}",
        ))
    return result
