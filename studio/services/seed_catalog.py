"""
studio.services.seed_catalog — Template Card & Dashboard Definitions
=====================================================================

The fixed catalog materialized by :mod:`studio.services.sample_seeder` for
every supported integration.  Each card's seed key is
``"{integration seed key}-{suffix}"`` (e.g. ``airflow-ops-42-pipeline-health``)
and is stored as ``seedKey`` inside the card's data source JSON; dashboards
store the integration seed key in their layout JSON.

Seed keys are persistent identifiers.  Renaming a suffix makes the seeder
insert a second copy of the template on the next run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from studio.constants import ADF_DEFAULT_ENDPOINT, ADF_DEFAULT_METHOD, SEED_KEY_PROPERTY
from studio.database.repository import IntegrationRef


@dataclass(frozen=True, slots=True)
class CardSeedDefinition:
    seed_key: str
    title: str
    description: str
    card_type: str
    layout_type: str
    query: str
    fields: list[dict[str, str]]
    style: dict[str, str]
    layout: dict[str, str]
    refresh_policy: dict[str, str]
    data_source: dict[str, Any]


@dataclass(frozen=True, slots=True)
class SeededCard:
    """An existing seed-tagged card, as the dashboard templater needs it."""

    id: int
    title: str
    description: str | None
    data_source_json: str | None


@dataclass(frozen=True, slots=True)
class DashboardCardSeed:
    card_id: int
    position_x: int
    position_y: int
    width: int
    height: int
    title: str
    description: str | None
    data_source_json: str | None
    show_title: bool = True
    show_description: bool = True
    refresh_mode: str = "Inherit"
    refresh_interval: str = "5m"


@dataclass(frozen=True, slots=True)
class DashboardSeedDefinition:
    seed_key: str
    integration_id: int
    name: str
    description: str
    layout: dict[str, Any]
    refresh_policy: dict[str, str]
    cards: list[DashboardCardSeed]


def to_json(value: Any) -> str:
    """Compact JSON, insertion-ordered keys."""
    return json.dumps(value, separators=(",", ":"))


def _fields(*specs: tuple[str, str, str]) -> list[dict[str, str]]:
    return [{"key": key, "label": label, "format": fmt} for key, label, fmt in specs]


def _style(background: str, text: str, accent: str, shadow: str, radius: str = "14px") -> dict[str, str]:
    return {
        "background": background,
        "text": text,
        "accent": accent,
        "fontSize": "base",
        "radius": radius,
        "shadow": shadow,
    }


# ---------------------------------------------------------------------------
# Card catalog, per integration type
# ---------------------------------------------------------------------------
# Each entry: suffix, title, description, card_type, layout_type, query,
# fields, density, data source (without seedKey, which is prepended).
_AIRFLOW_DAG_RUNS = {"integrationType": "airflow", "dagIds": []}
_DATABRICKS_JOBS = {"integrationType": "databricks", "jobIds": []}
_ADF_RUNS = {
    "endpoint": ADF_DEFAULT_ENDPOINT,
    "method": ADF_DEFAULT_METHOD,
    "integrationType": "adf",
    "pipelineNames": [],
}
_SYNAPSE_REQUEST_FIELDS = _fields(
    ("request_id", "Request", "text"),
    ("status", "Status", "status"),
    ("submit_time", "Submitted", "date"),
    ("total_elapsed_time", "Elapsed (ms)", "number"),
)
_SYNAPSE_SOURCE = {"integrationType": "synapse", "limit": 25}

CARD_CATALOG: dict[str, dict[str, Any]] = {
    "Airflow": {
        "style": _style("#f8fafc", "#0f172a", "#0ea5e9", "0 20px 45px rgba(15, 23, 42, 0.12)"),
        "refresh": {"mode": "Interval", "interval": "5m"},
        "cards": [
            ("pipeline-health", "Airflow - Pipeline Health Pulse",
             "Snapshot of run health across critical DAGs.",
             "kpi", "kpi", "dags/health?window=24h",
             _fields(("success_rate", "Success rate", "percent"),
                     ("failed_dags", "Failed DAGs", "number"),
                     ("running_now", "Running now", "number")),
             "comfortable",
             {"integrationType": "airflow", "endpoint": "/api/v1/dags/health", "method": "GET"}),
            ("scheduler-lag", "Airflow - Scheduler Lag",
             "Measures scheduling delay and backlog.",
             "kpi", "kpi", "scheduler/lag?window=6h",
             _fields(("avg_lag", "Avg lag (min)", "number"),
                     ("max_lag", "Max lag (min)", "number"),
                     ("queued_tasks", "Queued tasks", "number")),
             "compact",
             {"integrationType": "airflow", "endpoint": "/api/v1/scheduler/lag", "method": "GET"}),
            ("recent-runs", "Airflow - Recent DAG Runs",
             "Latest executions with status and duration.",
             "table", "grid", "dagRuns?limit=25&sort=-execution_date",
             _fields(("dag_id", "DAG", "text"),
                     ("run_id", "Run ID", "text"),
                     ("state", "State", "status"),
                     ("duration", "Duration (min)", "number")),
             "compact",
             {"integrationType": "airflow", "endpoint": "/api/v1/dags/{dagId}/dagRuns", "method": "GET"}),
            ("sla-risk", "Airflow - SLA Risk",
             "Tasks breaching SLA windows.",
             "table", "grid", "sla/breaches?window=24h",
             _fields(("dag_id", "DAG", "text"),
                     ("task_id", "Task", "text"),
                     ("minutes_overdue", "Overdue (min)", "number"),
                     ("owner", "Owner", "text")),
             "comfortable",
             {"integrationType": "airflow", "endpoint": "/api/v1/monitoring/slas", "method": "GET"}),
            ("backfill-timeline", "Airflow - Backfill Timeline",
             "Backfill volume by day.",
             "timeline", "timeline", "backfills/timeline?window=14d",
             _fields(("date", "Date", "date"),
                     ("backfills", "Backfills", "number"),
                     ("success_rate", "Success rate", "percent")),
             "comfortable",
             {"integrationType": "airflow", "endpoint": "/api/v1/backfills/timeline", "method": "GET"}),
            ("dag-runs-history", "Airflow - DAG Runs (History)",
             "Latest run per DAG with expandable history and tasks.",
             "table", "grid", "dagRuns?limit=100&order_by=-execution_date",
             _fields(("dag_id", "DAG", "text"),
                     ("dag_run_id", "Run", "text"),
                     ("state", "State", "status"),
                     ("start_date", "Start", "date"),
                     ("end_date", "End", "date")),
             "comfortable",
             {**_AIRFLOW_DAG_RUNS, "limit": 100, "orderBy": "-execution_date"}),
            ("dag-status-map", "Airflow - Status Map",
             "Current status snapshot across selected DAGs.",
             "table", "grid", "dagRuns?limit=50&order_by=-execution_date",
             _fields(("dag_id", "DAG", "text"),
                     ("state", "State", "status"),
                     ("start_date", "Start", "date"),
                     ("end_date", "End", "date")),
             "compact",
             {**_AIRFLOW_DAG_RUNS, "limit": 50, "orderBy": "-execution_date"}),
            ("dag-failures", "Airflow - Failed Runs",
             "Failure-focused view of recent DAG runs.",
             "table", "grid", "dagRuns?limit=100&order_by=-execution_date",
             _fields(("dag_id", "DAG", "text"),
                     ("dag_run_id", "Run", "text"),
                     ("state", "State", "status"),
                     ("start_date", "Start", "date"),
                     ("end_date", "End", "date")),
             "comfortable",
             {**_AIRFLOW_DAG_RUNS, "state": ["failed"], "limit": 100, "orderBy": "-execution_date"}),
            ("dag-running", "Airflow - Running Now",
             "DAG runs currently in progress.",
             "table", "grid", "dagRuns?limit=100&order_by=-execution_date",
             _fields(("dag_id", "DAG", "text"),
                     ("dag_run_id", "Run", "text"),
                     ("state", "State", "status"),
                     ("start_date", "Start", "date")),
             "compact",
             {**_AIRFLOW_DAG_RUNS, "state": ["running"], "limit": 100, "orderBy": "-execution_date"}),
            ("dag-performance", "Airflow - Run Durations",
             "Run durations for recent DAG executions.",
             "table", "grid", "dagRuns?limit=100&order_by=-execution_date",
             _fields(("dag_id", "DAG", "text"),
                     ("dag_run_id", "Run", "text"),
                     ("state", "State", "status"),
                     ("start_date", "Start", "date"),
                     ("end_date", "End", "date")),
             "comfortable",
             {**_AIRFLOW_DAG_RUNS, "limit": 100, "orderBy": "-execution_date"}),
        ],
    },
    "Databricks": {
        "style": _style("#fff7ed", "#431407", "#f97316", "0 20px 45px rgba(124, 45, 18, 0.18)"),
        "refresh": {"mode": "Interval", "interval": "5m"},
        "cards": [
            ("job-throughput", "Databricks - Job Throughput",
             "Job volume and failure rate snapshot.",
             "kpi", "kpi", "jobs/throughput?window=24h",
             _fields(("jobs_per_hour", "Jobs/hour", "number"),
                     ("avg_duration", "Avg duration (min)", "number"),
                     ("failed_runs", "Failed runs", "number")),
             "comfortable",
             {"integrationType": "databricks", "endpoint": "/api/2.1/jobs/runs/list", "method": "GET"}),
            ("cost-forecast", "Databricks - Cost Forecast",
             "Projected spend based on last 7 days.",
             "kpi", "kpi", "cost/forecast?window=7d",
             _fields(("daily_avg", "Daily avg ($)", "currency"),
                     ("forecast_30d", "30d forecast ($)", "currency"),
                     ("delta_week", "WoW change", "percent")),
             "compact",
             {"integrationType": "databricks", "endpoint": "/api/2.0/workspace/costs", "method": "GET"}),
            ("cluster-inventory", "Databricks - Cluster Inventory",
             "Live clusters with runtime and owners.",
             "table", "grid", "clusters/list",
             _fields(("cluster_name", "Cluster", "text"),
                     ("state", "State", "status"),
                     ("node_type", "Node type", "text"),
                     ("owner", "Owner", "text")),
             "compact",
             {"integrationType": "databricks", "endpoint": "/api/2.0/clusters/list", "method": "GET"}),
            ("notebook-trend", "Databricks - Notebook Success Trend",
             "Run success rate by day.",
             "timeline", "timeline", "notebooks/trend?window=14d",
             _fields(("date", "Date", "date"),
                     ("success_rate", "Success rate", "percent"),
                     ("runs", "Runs", "number")),
             "comfortable",
             {"integrationType": "databricks", "endpoint": "/api/2.1/jobs/runs/list", "method": "GET"}),
            ("delta-quality", "Databricks - Delta Quality Gate",
             "Delta tables failing quality checks.",
             "table", "grid", "delta/quality?window=24h",
             _fields(("table", "Table", "text"),
                     ("check", "Check", "text"),
                     ("status", "Status", "status"),
                     ("failures", "Failures", "number")),
             "comfortable",
             {"integrationType": "databricks", "endpoint": "/api/2.1/unity-catalog/quality", "method": "GET"}),
            ("job-runs", "Databricks - Job Runs (Latest)",
             "Latest job runs with status and duration.",
             "table", "grid", "jobs/runs/list",
             _fields(("job_id", "Job ID", "text"),
                     ("run_id", "Run ID", "text"),
                     ("state", "State", "status"),
                     ("start_time", "Start", "date"),
                     ("end_time", "End", "date")),
             "compact",
             {**_DATABRICKS_JOBS, "limit": 100}),
            ("job-failures", "Databricks - Failed Runs",
             "Failure-focused view of job runs.",
             "table", "grid", "jobs/runs/list",
             _fields(("job_id", "Job ID", "text"),
                     ("run_id", "Run ID", "text"),
                     ("state", "State", "status"),
                     ("start_time", "Start", "date")),
             "compact",
             {**_DATABRICKS_JOBS, "states": ["FAILED", "ERROR"], "limit": 100}),
            ("job-status-map", "Databricks - Status Map",
             "Status snapshot across selected jobs.",
             "table", "grid", "jobs/runs/list",
             _fields(("job_id", "Job ID", "text"),
                     ("state", "State", "status"),
                     ("start_time", "Start", "date")),
             "compact",
             {**_DATABRICKS_JOBS, "limit": 50}),
            ("job-performance", "Databricks - Run Durations",
             "Duration spotlight for recent job runs.",
             "table", "grid", "jobs/runs/list",
             _fields(("job_id", "Job ID", "text"),
                     ("run_id", "Run ID", "text"),
                     ("state", "State", "status"),
                     ("start_time", "Start", "date"),
                     ("end_time", "End", "date")),
             "comfortable",
             {**_DATABRICKS_JOBS, "limit": 100}),
            ("cluster-status", "Databricks - Cluster Status",
             "Cluster states and ownership snapshot.",
             "table", "grid", "clusters/list",
             _fields(("cluster_id", "Cluster ID", "text"),
                     ("cluster_name", "Cluster", "text"),
                     ("state", "State", "status"),
                     ("owner", "Owner", "text")),
             "compact",
             {"integrationType": "databricks", "clusterIds": [], "limit": 100}),
        ],
    },
    "AzureDataFactory": {
        "style": _style("#eef2ff", "#1e1b4b", "#2563eb", "0 20px 45px rgba(30, 27, 75, 0.12)"),
        "refresh": {"mode": "Interval", "interval": "10m"},
        "cards": [
            ("pipeline-runs", "ADF - Pipeline Runs (Latest)",
             "Latest pipeline runs with status and duration.",
             "table", "grid", "pipelineRuns",
             _fields(("pipeline_name", "Pipeline", "text"),
                     ("run_id", "Run ID", "text"),
                     ("status", "Status", "status"),
                     ("run_start", "Start", "date"),
                     ("run_end", "End", "date")),
             "comfortable",
             {**_ADF_RUNS, "limit": 100}),
            ("pipeline-failures", "ADF - Failed Runs",
             "Failure-focused view of pipeline runs.",
             "table", "grid", "pipelineRuns",
             _fields(("pipeline_name", "Pipeline", "text"),
                     ("run_id", "Run ID", "text"),
                     ("status", "Status", "status"),
                     ("run_start", "Start", "date")),
             "compact",
             {**_ADF_RUNS, "status": ["Failed"], "limit": 100}),
            ("pipeline-status-map", "ADF - Status Map",
             "Status snapshot across selected pipelines.",
             "table", "grid", "pipelineRuns",
             _fields(("pipeline_name", "Pipeline", "text"),
                     ("status", "Status", "status"),
                     ("run_start", "Start", "date")),
             "compact",
             {**_ADF_RUNS, "limit": 50}),
            ("pipeline-performance", "ADF - Run Durations",
             "Duration spotlight for recent pipeline runs.",
             "table", "grid", "pipelineRuns",
             _fields(("pipeline_name", "Pipeline", "text"),
                     ("run_id", "Run ID", "text"),
                     ("status", "Status", "status"),
                     ("run_start", "Start", "date"),
                     ("run_end", "End", "date")),
             "comfortable",
             {**_ADF_RUNS, "limit": 100}),
        ],
    },
    "Synapse": {
        "style": _style("#f0f9ff", "#0f172a", "#0284c7", "0 20px 45px rgba(2, 132, 199, 0.16)"),
        "refresh": {"mode": "Interval", "interval": "10m"},
        "cards": [
            ("recent-requests", "Synapse - Recent Requests",
             "Latest SQL requests with status and duration.",
             "table", "grid",
             "SELECT TOP 25 request_id, status, submit_time, start_time, end_time, "
             "total_elapsed_time FROM sys.dm_pdw_exec_requests ORDER BY submit_time DESC;",
             _SYNAPSE_REQUEST_FIELDS, "comfortable", _SYNAPSE_SOURCE),
            ("running-requests", "Synapse - Running Requests",
             "Queries currently executing or queued.",
             "table", "grid",
             "SELECT TOP 25 request_id, status, submit_time, start_time, total_elapsed_time "
             "FROM sys.dm_pdw_exec_requests WHERE status IN ('Running','Submitted','Queued') "
             "ORDER BY submit_time DESC;",
             _SYNAPSE_REQUEST_FIELDS, "compact", _SYNAPSE_SOURCE),
            ("failed-requests", "Synapse - Failed Requests",
             "Recent failed or cancelled requests.",
             "table", "grid",
             "SELECT TOP 25 request_id, status, submit_time, start_time, end_time, "
             "total_elapsed_time FROM sys.dm_pdw_exec_requests WHERE status IN ('Failed','Cancelled') "
             "ORDER BY submit_time DESC;",
             _SYNAPSE_REQUEST_FIELDS, "compact", _SYNAPSE_SOURCE),
        ],
    },
}


# ---------------------------------------------------------------------------
# Dashboard catalog
# ---------------------------------------------------------------------------
# Placements: (card suffix, x, y, width, height)
_OPS_GRID = [(0, 0, 4, 2), (4, 0, 4, 2), (8, 0, 4, 2), (0, 2, 12, 3), (0, 5, 12, 3)]

DASHBOARD_CATALOG: dict[str, dict[str, Any]] = {
    "Airflow": {
        "name": "Airflow Operations",
        "description": "Operational overview for DAG stability and throughput.",
        "background_pattern": "dots",
        "theme": _style(
            "#f1f5f9", "#0f172a", "#0ea5e9", "0 30px 60px rgba(15, 23, 42, 0.12)", radius="18px"
        ),
        "cards": ["pipeline-health", "scheduler-lag", "sla-risk", "recent-runs", "backfill-timeline"],
    },
    "Databricks": {
        "name": "Databricks Command Center",
        "description": "Performance, cost, and quality signals for Databricks workloads.",
        "background_pattern": "grid",
        "theme": _style(
            "#fff7ed", "#431407", "#f97316", "0 30px 60px rgba(124, 45, 18, 0.18)", radius="18px"
        ),
        "cards": ["job-throughput", "cost-forecast", "delta-quality", "cluster-inventory", "notebook-trend"],
    },
}


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def build_card_definitions(integration: IntegrationRef) -> list[CardSeedDefinition]:
    """Every template card for *integration*; empty for unknown types."""
    catalog = CARD_CATALOG.get(integration.type)
    if catalog is None:
        return []

    definitions: list[CardSeedDefinition] = []
    for (suffix, title, description, card_type, layout_type, query,
         fields, density, source) in catalog["cards"]:
        seed_key = f"{integration.seed_key}-{suffix}"
        definitions.append(CardSeedDefinition(
            seed_key=seed_key,
            title=title,
            description=description,
            card_type=card_type,
            layout_type=layout_type,
            query=query,
            fields=[dict(f) for f in fields],
            style=dict(catalog["style"]),
            layout={"density": density},
            refresh_policy=dict(catalog["refresh"]),
            data_source={SEED_KEY_PROPERTY: seed_key, **source},
        ))
    return definitions


def build_dashboard_definition(
    integration: IntegrationRef, cards_by_seed: dict[str, SeededCard]
) -> DashboardSeedDefinition | None:
    """The integration's template dashboard, or ``None``.

    *cards_by_seed* is keyed by lower-cased seed key.  Cards that cannot be
    found are dropped from the layout; a dashboard with no cards is not
    built at all.
    """
    catalog = DASHBOARD_CATALOG.get(integration.type)
    if catalog is None:
        return None

    placements: list[DashboardCardSeed] = []
    for suffix, (x, y, width, height) in zip(catalog["cards"], _OPS_GRID, strict=True):
        card = cards_by_seed.get(f"{integration.seed_key}-{suffix}".lower())
        if card is None:
            continue
        placements.append(DashboardCardSeed(
            card_id=card.id,
            position_x=x,
            position_y=y,
            width=width,
            height=height,
            title=card.title,
            description=card.description,
            data_source_json=card.data_source_json,
        ))
    if not placements:
        return None

    layout = {
        SEED_KEY_PROPERTY: integration.seed_key,
        "layout": {
            "columns": "12",
            "gap": "16",
            "rowHeight": "120",
            "cardPadding": "16",
            "headerStyle": "expanded",
            "backgroundPattern": catalog["background_pattern"],
            "showFilters": True,
            "showLegend": True,
        },
        "theme": dict(catalog["theme"]),
    }
    return DashboardSeedDefinition(
        seed_key=integration.seed_key,
        integration_id=integration.id,
        name=catalog["name"],
        description=catalog["description"],
        layout=layout,
        refresh_policy={"mode": "Interval", "interval": "5m"},
        cards=placements,
    )
