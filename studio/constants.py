"""
studio.constants — Shared Constants & Policy
=============================================

Single source of truth for the test-gate policy, the seed marker, and the
legacy integer encodings of integration / owner types.  Import from here
instead of duplicating in services.
"""

from __future__ import annotations

from datetime import timedelta

# ---------------------------------------------------------------------------
# Test gate policy
# ---------------------------------------------------------------------------
# A test assertion is only honoured if it was produced within this window.
TEST_FRESHNESS_WINDOW = timedelta(minutes=30)

TEST_REQUIRED_ON_CREATE = "Card must be tested successfully before saving."
TEST_REQUIRED_ON_UPDATE = "Card must be tested successfully before saving changes."
TEST_INPUTS_REQUIRED = "IntegrationId and Query are required for testing."

# ---------------------------------------------------------------------------
# Templates / seeding
# ---------------------------------------------------------------------------
# JSON property marking a card (data_source_json) or dashboard (layout_json)
# as a seeded template.  Load-bearing: visibility and idempotent reseeding
# both key off this exact name.
SEED_KEY_PROPERTY = "seedKey"
SEED_KEY_MARKER = f'"{SEED_KEY_PROPERTY}"'

# Account that owns seeded templates; falls back to the oldest active user.
BOOTSTRAP_ADMIN_EMAIL = "puod_admin"

CLONE_TITLE_PREFIX = "Copy of "

# ---------------------------------------------------------------------------
# Integration types
# ---------------------------------------------------------------------------
SUPPORTED_INTEGRATION_TYPES: tuple[str, ...] = (
    "Airflow",
    "Databricks",
    "AzureDataFactory",
    "Synapse",
)

SEED_BASE_BY_TYPE: dict[str, str] = {
    "Airflow": "airflow-ops",
    "Databricks": "databricks-ops",
    "AzureDataFactory": "adf-ops",
    "Synapse": "synapse-ops",
}

# Legacy compatibility: integration rows written before the string encoding
# store the enum ordinal.  Remove once upstream data is fully migrated.
LEGACY_INTEGRATION_TYPE_CODES: dict[int, str] = {
    0: "Databricks",
    1: "Synapse",
    2: "Airflow",
    3: "AzureDataFactory",
}

LEGACY_OWNER_TYPE_CODES: dict[int, str] = {
    2: "client",
    0: "company",
}
LEGACY_OWNER_TYPE_FALLBACK = "group"

INTEGRATION_TYPE_ALIASES: dict[str, str] = {
    "adf": "AzureDataFactory",
    "azuredatafactory": "AzureDataFactory",
    "azure_data_factory": "AzureDataFactory",
    "synapse": "Synapse",
}

# ---------------------------------------------------------------------------
# Azure Data Factory data source defaults (backfilled by the seeder)
# ---------------------------------------------------------------------------
ADF_DEFAULT_ENDPOINT = "/queryPipelineRuns?api-version=2018-06-01"
ADF_DEFAULT_METHOD = "POST"
ADF_INTEGRATION_TYPE_NAMES = frozenset({"adf", "azuredatafactory"})
