"""
tests/test_card_service.py — Test-Gated Card Persistence
=========================================================

Covers the save gate (signature + freshness), update ride-through,
partial updates, soft delete, cloning, visibility, templates, and the
async test-query path.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from conftest import add_card, add_group_membership

from studio.constants import TEST_INPUTS_REQUIRED
from studio.database.engine import run_db
from studio.database.models import (
    CardStatus,
    ShareAccess,
    ShareSubject,
    ShareTarget,
    StudioScope,
)
from studio.errors import (
    AuthorizationError,
    NotFoundError,
    StudioValidationError,
    TestRequiredError,
)
from studio.schemas import (
    CardTestRequest,
    CreateCardRequest,
    ShareRequest,
    UpdateCardRequest,
)
from studio.services import card_service, share_service
from studio.services.integration_client import IntegrationQueryClient
from studio.services.signature import compute_signature

OWNER = 10
OTHER = 20
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


def run_async(coro):
    """Run an async coroutine to completion without pytest-asyncio."""
    return asyncio.run(coro)


def _request(**overrides) -> CreateCardRequest:
    data = dict(
        title="Pipeline health",
        scope=StudioScope.CLIENT,
        client_id=1,
        card_type="kpi",
        layout_type="kpi",
        integration_id=42,
        query="dags/health?window=24h",
        style_json='{"accent":"#0ea5e9"}',
    )
    data.update(overrides)
    return CreateCardRequest(**data)


def _sign(request: CreateCardRequest) -> str:
    return compute_signature(
        request.integration_id, request.query, request.card_type, request.layout_type,
        request.fields_json, request.style_json, request.layout_json,
        request.refresh_policy_json, request.data_source_json,
    )


def _tested(request: CreateCardRequest, tested_at: datetime = NOW) -> CreateCardRequest:
    return request.model_copy(update={"test_signature": _sign(request), "tested_at": tested_at})


def _create_tested_card(engine) -> int:
    return card_service.create_card(engine, _tested(_request()), OWNER, now=NOW).id


# ==========================================================================
# CREATE: test gate
# ==========================================================================
class TestCreateGate:
    def test_untested_card_with_query_is_rejected(self, db_engine):
        with pytest.raises(TestRequiredError, match="tested successfully before saving"):
            card_service.create_card(db_engine, _request(), OWNER, now=NOW)

    def test_matching_fresh_test_is_accepted_and_stamped(self, db_engine):
        request = _tested(_request(), tested_at=NOW - timedelta(minutes=5))

        card = card_service.create_card(db_engine, request, OWNER, now=NOW)

        assert card.status == CardStatus.DRAFT
        assert card.last_test_succeeded is True
        assert card.last_test_signature == _sign(request)
        assert card.last_tested_at.replace(tzinfo=UTC) == NOW - timedelta(minutes=5)

    def test_signature_is_case_insensitive(self, db_engine):
        request = _request()
        request = request.model_copy(
            update={"test_signature": _sign(request).lower(), "tested_at": NOW}
        )
        assert card_service.create_card(db_engine, request, OWNER, now=NOW).id

    def test_signature_for_other_configuration_is_rejected(self, db_engine):
        tested = _tested(_request())
        edited = tested.model_copy(update={"query": "dags/health?window=48h"})
        with pytest.raises(TestRequiredError):
            card_service.create_card(db_engine, edited, OWNER, now=NOW)

    def test_card_without_query_needs_no_test(self, db_engine):
        card = card_service.create_card(
            db_engine, _request(integration_id=None, query=None), OWNER, now=NOW
        )
        assert card.last_test_succeeded is False
        assert card.last_test_signature is None
        assert card.last_tested_at is None

    def test_blank_query_needs_no_test(self, db_engine):
        card = card_service.create_card(db_engine, _request(query="   "), OWNER, now=NOW)
        assert card.last_test_succeeded is False

    def test_client_scope_requires_client_id(self, db_engine):
        with pytest.raises(StudioValidationError):
            card_service.create_card(
                db_engine, _request(client_id=None, query=None), OWNER, now=NOW
            )

    def test_company_scope_requires_profile_id(self, db_engine):
        with pytest.raises(StudioValidationError):
            card_service.create_card(
                db_engine,
                _request(scope=StudioScope.COMPANY, client_id=None, query=None),
                OWNER,
                now=NOW,
            )


class TestFreshnessBoundary:
    def test_exactly_thirty_minutes_is_accepted(self, db_engine):
        request = _tested(_request(), tested_at=NOW - timedelta(minutes=30))
        assert card_service.create_card(db_engine, request, OWNER, now=NOW).id

    def test_thirty_minutes_and_one_second_is_rejected(self, db_engine):
        request = _tested(_request(), tested_at=NOW - timedelta(minutes=30, seconds=1))
        with pytest.raises(TestRequiredError):
            card_service.create_card(db_engine, request, OWNER, now=NOW)

    def test_policy_function_directly(self):
        sig = "ABC"
        assert card_service.is_valid_test_assertion(sig, "abc", NOW, NOW)
        assert not card_service.is_valid_test_assertion(sig, "", NOW, NOW)
        assert not card_service.is_valid_test_assertion(sig, "ABC", None, NOW)
        assert not card_service.is_valid_test_assertion(sig, "ABD", NOW, NOW)

    def test_naive_timestamps_are_utc(self):
        naive = NOW.replace(tzinfo=None) - timedelta(minutes=10)
        assert card_service.is_valid_test_assertion("A", "A", naive, NOW)

    def test_window_is_a_keyword_override(self):
        tested_at = NOW - timedelta(minutes=10)
        assert not card_service.is_valid_test_assertion(
            "A", "A", tested_at, NOW, window=timedelta(minutes=5)
        )


# ==========================================================================
# UPDATE
# ==========================================================================
class TestUpdate:
    def test_style_only_edit_rides_on_previous_test(self, db_engine):
        card_id = _create_tested_card(db_engine)

        card = card_service.update_card(
            db_engine, card_id, UpdateCardRequest(style_json='{"accent":"#f97316"}'),
            OWNER, False, now=NOW,
        )

        assert card.style_json == '{"accent":"#f97316"}'
        assert card.last_test_succeeded is True

    def test_query_change_without_test_is_rejected(self, db_engine):
        card_id = _create_tested_card(db_engine)
        with pytest.raises(TestRequiredError, match="before saving changes"):
            card_service.update_card(
                db_engine, card_id, UpdateCardRequest(query="dags/health?window=24hx"),
                OWNER, False, now=NOW,
            )
        # Nothing persisted
        assert card_service.get_card(db_engine, card_id).query == "dags/health?window=24h"

    def test_query_change_with_fresh_test_restamps(self, db_engine):
        card_id = _create_tested_card(db_engine)
        new_request = _request(query="dags/health?window=7d")
        tested_at = NOW - timedelta(minutes=1)

        card = card_service.update_card(
            db_engine,
            card_id,
            UpdateCardRequest(
                query=new_request.query,
                test_signature=_sign(new_request),
                tested_at=tested_at,
            ),
            OWNER, False, now=NOW,
        )

        assert card.query == "dags/health?window=7d"
        assert card.last_test_signature == _sign(new_request)
        assert card.last_tested_at.replace(tzinfo=UTC) == tested_at

    def test_adding_query_to_untested_card_requires_test(self, db_engine):
        card_id = add_card(db_engine, OWNER, integration_id=42)
        with pytest.raises(TestRequiredError):
            card_service.update_card(
                db_engine, card_id, UpdateCardRequest(query="select 1"), OWNER, False, now=NOW
            )

    def test_card_without_query_is_reset_to_untested(self, db_engine):
        card_id = add_card(
            db_engine, OWNER,
            last_test_succeeded=True, last_test_signature="OLD", last_tested_at=NOW,
        )
        card = card_service.update_card(
            db_engine, card_id, UpdateCardRequest(title="Renamed"), OWNER, False, now=NOW
        )
        assert card.title == "Renamed"
        assert card.last_test_succeeded is False
        assert card.last_test_signature is None
        assert card.last_tested_at is None

    def test_partial_update_keeps_unspecified_fields(self, db_engine):
        card_id = _create_tested_card(db_engine)
        card = card_service.update_card(
            db_engine, card_id,
            UpdateCardRequest(description="Now with notes", status=CardStatus.PUBLISHED),
            OWNER, False, now=NOW,
        )
        assert card.description == "Now with notes"
        assert card.status == CardStatus.PUBLISHED
        assert card.title == "Pipeline health"
        assert card.style_json == '{"accent":"#0ea5e9"}'

    def test_non_owner_is_rejected(self, db_engine):
        card_id = _create_tested_card(db_engine)
        with pytest.raises(AuthorizationError):
            card_service.update_card(
                db_engine, card_id, UpdateCardRequest(title="x"), OTHER, False, now=NOW
            )

    def test_platform_admin_may_update_any_card(self, db_engine):
        card_id = _create_tested_card(db_engine)
        card = card_service.update_card(
            db_engine, card_id, UpdateCardRequest(title="Admin edit"), OTHER, True, now=NOW
        )
        assert card.title == "Admin edit"

    def test_missing_card(self, db_engine):
        with pytest.raises(NotFoundError):
            card_service.update_card(db_engine, 999, UpdateCardRequest(), OWNER, True)


# ==========================================================================
# DELETE / CLONE
# ==========================================================================
class TestDeleteAndClone:
    def test_soft_delete_hides_card(self, db_engine):
        card_id = _create_tested_card(db_engine)
        card_service.delete_card(db_engine, card_id, OWNER, False)

        assert card_service.get_card(db_engine, card_id) is None
        with pytest.raises(NotFoundError):
            card_service.delete_card(db_engine, card_id, OWNER, False)

    def test_delete_by_non_owner_is_rejected(self, db_engine):
        card_id = _create_tested_card(db_engine)
        with pytest.raises(AuthorizationError):
            card_service.delete_card(db_engine, card_id, OTHER, False)

    def test_clone_detaches_and_resets(self, db_engine):
        source_id = add_card(
            db_engine, OWNER,
            title="Revenue KPI",
            status=CardStatus.PUBLISHED,
            integration_id=42,
            query="scheduler/lag?window=6h",
            style_json='{"accent":"#0ea5e9"}',
            data_source_json='{"seedKey":"airflow-ops-42-scheduler-lag"}',
            last_test_succeeded=True,
            last_test_signature="SIG",
            last_tested_at=NOW,
        )

        clone = card_service.clone_card(db_engine, source_id, OTHER)

        assert clone.id != source_id
        assert clone.title == "Copy of Revenue KPI"
        assert clone.integration_id is None
        assert clone.data_source_json is None
        assert clone.status == CardStatus.DRAFT
        assert clone.last_test_succeeded is False
        assert clone.last_test_signature is None
        assert clone.last_tested_at is None
        assert clone.query == "scheduler/lag?window=6h"
        assert clone.style_json == '{"accent":"#0ea5e9"}'
        assert clone.scope == StudioScope.CLIENT

    def test_clone_of_missing_card(self, db_engine):
        with pytest.raises(NotFoundError):
            card_service.clone_card(db_engine, 12345, OWNER)


# ==========================================================================
# VISIBILITY
# ==========================================================================
class TestVisibility:
    def test_non_admin_sees_owned_shared_and_templates_only(self, db_engine):
        add_group_membership(db_engine, OWNER, group_id=7)
        owned = add_card(db_engine, OWNER, title="owned")
        direct = add_card(db_engine, OTHER, title="shared-direct")
        via_group = add_card(db_engine, OTHER, title="shared-group")
        template = add_card(db_engine, OTHER, title="template",
                            data_source_json='{"seedKey":"airflow-ops-1-sla-risk"}')
        hidden = add_card(db_engine, OTHER, title="hidden",
                          data_source_json='{"integrationType":"airflow"}')

        share_service.create_share(db_engine, ShareRequest(
            target_type=ShareTarget.CARD, target_id=direct,
            subject_type=ShareSubject.USER, subject_id=OWNER,
        ), OTHER)
        share_service.create_share(db_engine, ShareRequest(
            target_type=ShareTarget.CARD, target_id=via_group,
            subject_type=ShareSubject.GROUP, subject_id=7, access_level=ShareAccess.EDIT,
        ), OTHER)

        ids = {c.id for c in card_service.list_cards(
            db_engine, StudioScope.CLIENT, 1, None, OWNER, False
        )}

        assert ids == {owned, direct, via_group, template}
        assert hidden not in ids

    def test_deleted_group_membership_grants_nothing(self, db_engine):
        add_group_membership(db_engine, OWNER, group_id=7, is_deleted=True)
        card_id = add_card(db_engine, OTHER)
        share_service.create_share(db_engine, ShareRequest(
            target_type=ShareTarget.CARD, target_id=card_id,
            subject_type=ShareSubject.GROUP, subject_id=7,
        ), OTHER)
        assert card_service.list_cards(db_engine, None, None, None, OWNER, False) == []

    def test_admin_sees_everything(self, db_engine):
        add_card(db_engine, OTHER)
        add_card(db_engine, OTHER)
        assert len(card_service.list_cards(db_engine, None, None, None, OWNER, True)) == 2

    def test_scope_filters_and_ordering(self, db_engine):
        older = add_card(db_engine, OWNER, title="older", updated_at=NOW - timedelta(hours=1))
        newer = add_card(db_engine, OWNER, title="newer", updated_at=NOW)
        add_card(db_engine, OWNER, client_id=2)
        add_card(db_engine, OWNER, scope=StudioScope.COMPANY, client_id=None, profile_id=9)
        deleted = add_card(db_engine, OWNER)
        card_service.delete_card(db_engine, deleted, OWNER, False)

        client_one = card_service.list_cards(db_engine, StudioScope.CLIENT, 1, None, OWNER, False)
        assert [c.id for c in client_one] == [newer, older]

        company = card_service.list_cards(db_engine, StudioScope.COMPANY, None, 9, OWNER, False)
        assert len(company) == 1

        # profile filter is ignored for client scope
        assert len(card_service.list_cards(db_engine, StudioScope.CLIENT, None, 9, OWNER, False)) == 3


class TestTemplates:
    def test_published_only_ordered(self, db_engine):
        b = add_card(db_engine, OTHER, title="B", status=CardStatus.PUBLISHED,
                     integration_id=1, card_type="table",
                     data_source_json='{"seedKey":"s-b"}')
        a = add_card(db_engine, OTHER, title="A", status=CardStatus.PUBLISHED,
                     integration_id=1, card_type="kpi",
                     data_source_json='{"seedKey":"s-a"}')
        add_card(db_engine, OTHER, title="draft", integration_id=1,
                 data_source_json='{"seedKey":"s-d"}')
        add_card(db_engine, OTHER, title="other", status=CardStatus.PUBLISHED,
                 integration_id=2, data_source_json='{"seedKey":"s-o"}')

        templates = card_service.get_templates(db_engine, 1, OWNER, False)
        assert [t.id for t in templates] == [a, b]

    def test_unshared_non_template_is_hidden(self, db_engine):
        add_card(db_engine, OTHER, status=CardStatus.PUBLISHED, integration_id=1)
        assert card_service.get_templates(db_engine, None, OWNER, False) == []


# ==========================================================================
# TEST QUERY
# ==========================================================================
class TestTestCard:
    def _client(self, status_code: int = 200, body: str = "{}") -> IntegrationQueryClient:
        transport = httpx.MockTransport(lambda request: httpx.Response(status_code, text=body))
        return IntegrationQueryClient("http://svc", transport=transport)

    def test_missing_inputs_fail_without_calling_service(self):
        client = IntegrationQueryClient(None)
        result = run_async(card_service.test_card(
            CardTestRequest(integration_id=None, query="q"), "t", client
        ))
        assert result.success is False
        assert result.error_message == TEST_INPUTS_REQUIRED

        result = run_async(card_service.test_card(
            CardTestRequest(integration_id=1, query="  "), "t", client
        ))
        assert result.error_message == TEST_INPUTS_REQUIRED

    def test_success_returns_signature_that_create_accepts(self, db_engine):
        request = _request()
        result = run_async(card_service.test_card(
            CardTestRequest(**request.model_dump(
                include={"integration_id", "query", "card_type", "layout_type", "style_json"}
            )),
            "Bearer t",
            self._client(),
        ))

        assert result.success is True
        assert result.signature == _sign(request)
        assert result.execution_time_ms is not None

        saved = card_service.create_card(
            db_engine,
            request.model_copy(update={"test_signature": result.signature, "tested_at": NOW}),
            OWNER,
            now=NOW,
        )
        assert saved.last_test_succeeded is True

    def test_missing_types_are_coalesced(self):
        result = run_async(card_service.test_card(
            CardTestRequest(integration_id=3, query="q"), None, self._client()
        ))
        assert result.signature == compute_signature(3, "q", "", "", None, None, None, None, None)

    def test_failure_has_no_signature(self):
        result = run_async(card_service.test_card(
            CardTestRequest(integration_id=3, query="q"), None, self._client(500, "boom")
        ))
        assert result.success is False
        assert result.signature is None
        assert result.error_message == "Integration query failed: boom"


class TestAsyncBridge:
    def test_run_db_ships_service_call_to_thread(self, db_engine):
        card_id = _create_tested_card(db_engine)
        card = run_async(run_db(card_service.get_card, db_engine, card_id))
        assert card.id == card_id
