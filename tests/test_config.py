"""
tests/test_config.py — Configuration & Entry Point
===================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, inspect

from studio.__main__ import main
from studio.config import DEFAULT_INTEGRATION_TIMEOUT_SECONDS, StudioConfig, load_config
from studio.constants import BOOTSTRAP_ADMIN_EMAIL


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("INTEGRATION_SERVICE_URL", raising=False)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nope.yaml")
        assert cfg == StudioConfig()
        assert cfg.integration_timeout_seconds == DEFAULT_INTEGRATION_TIMEOUT_SECONDS
        assert cfg.bootstrap_admin_email == BOOTSTRAP_ADMIN_EMAIL
        assert cfg.seed_on_startup is True

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "integration_service_url: http://integrations:5001\n"
            "integration_timeout_seconds: 12\n"
            "bootstrap_admin_email: admin@example.com\n"
            "seed_on_startup: false\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.integration_service_url == "http://integrations:5001"
        assert cfg.integration_timeout_seconds == 12.0
        assert cfg.bootstrap_admin_email == "admin@example.com"
        assert cfg.seed_on_startup is False

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == StudioConfig()

    def test_environment_overrides_url(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("integration_service_url: http://yaml\n", encoding="utf-8")
        monkeypatch.setenv("INTEGRATION_SERVICE_URL", "http://env")
        assert load_config(path).integration_service_url == "http://env"

    def test_blank_url_is_none(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("integration_service_url: '   '\n", encoding="utf-8")
        assert load_config(path).integration_service_url is None

    def test_non_mapping_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)


class TestMain:
    def test_missing_database_url_exits_nonzero(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert main(["init-db"]) == 1

    def test_bad_config_exits_nonzero(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("just a string\n", encoding="utf-8")
        assert main([]) == 1

    def test_default_command_creates_tables_and_seeds(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        db_url = f"sqlite:///{tmp_path / 'studio.db'}"
        monkeypatch.setenv("DATABASE_URL", db_url)

        assert main([]) == 0

        tables = set(inspect(create_engine(db_url)).get_table_names())
        assert {"studio_cards", "studio_dashboards", "studio_dashboard_cards",
                "studio_shares"} <= tables
