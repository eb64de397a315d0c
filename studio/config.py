"""
studio.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for **infrastructure-only** settings (where the
integration service lives, which account owns seeded templates, whether to
seed on startup).  Secrets and the database URL come from the environment
(``.env`` via python-dotenv).

Usage::

    from studio.config import load_config

    cfg = load_config()                  # reads ./config.yaml by default
    print(cfg.integration_service_url)   # "http://localhost:5001"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from studio.constants import BOOTSTRAP_ADMIN_EMAIL

DEFAULT_INTEGRATION_TIMEOUT_SECONDS = 30.0


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StudioConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Integration service (test queries)
    integration_service_url: str | None = None
    integration_timeout_seconds: float = DEFAULT_INTEGRATION_TIMEOUT_SECONDS

    # Seeding
    bootstrap_admin_email: str = BOOTSTRAP_ADMIN_EMAIL
    seed_on_startup: bool = True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> StudioConfig:
    """Read *path* and return a :class:`StudioConfig` instance.

    A missing file is not an error: every key has a default, and
    ``INTEGRATION_SERVICE_URL`` in the environment overrides the YAML value
    so the service can be configured from ``.env`` alone.

    Raises
    ------
    ValueError
        If the file exists but is not a YAML mapping.
    """
    raw: dict = {}
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(
                f"Configuration file must contain a mapping: {config_path.resolve()}"
            )
        raw = loaded or {}

    url = os.getenv("INTEGRATION_SERVICE_URL") or raw.get("integration_service_url")

    return StudioConfig(
        integration_service_url=url.strip() if url and url.strip() else None,
        integration_timeout_seconds=float(
            raw.get("integration_timeout_seconds", DEFAULT_INTEGRATION_TIMEOUT_SECONDS)
        ),
        bootstrap_admin_email=str(raw.get("bootstrap_admin_email") or BOOTSTRAP_ADMIN_EMAIL),
        seed_on_startup=bool(raw.get("seed_on_startup", True)),
    )
