"""Tests for the profile-based config loader."""

from __future__ import annotations

import pytest

from ledger.app.config import load_settings

pytestmark = [pytest.mark.config]


def test_load_settings_falls_back_to_defaults(monkeypatch, tmp_path):
    """Missing profiles should default to the built-in dev configuration."""

    monkeypatch.setenv("LEDGER_CONFIG_PROFILE", "missing")
    monkeypatch.setenv("LEDGER_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = load_settings()

    assert settings.environment == "dev"
    assert settings.database_url.endswith("/ledger")
    assert settings.database.auto_create_schema is True
    assert settings.listing.default_per_page == 25
    assert settings.listing.max_per_page == 100
    assert settings.logging.level == "INFO"
    assert "http://localhost:3000" in settings.allowed_origins


def test_load_settings_reads_yaml_profile(monkeypatch, tmp_path):
    profiles_dir = tmp_path / "profiles"
    profiles_dir.mkdir()
    (profiles_dir / "staging.yaml").write_text(
        """
environment: staging

database:
  url: "sqlite:///./var/ledger.db"
  auto_create_schema: false

listing:
  default_per_page: 10
  max_per_page: 50

logging:
  level: debug
  json: true

cors:
  allowed_origins: ["https://ledger.example.com"]
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("LEDGER_CONFIG_PROFILE", "staging")
    monkeypatch.setenv("LEDGER_CONFIG_DIR", str(profiles_dir))
    monkeypatch.delenv("DATABASE_URL", raising=False)

    settings = load_settings()

    assert settings.environment == "staging"
    assert settings.database_url == "sqlite:///./var/ledger.db"
    assert settings.database.auto_create_schema is False
    assert settings.listing.default_per_page == 10
    assert settings.listing.max_per_page == 50
    assert settings.logging.level == "DEBUG"
    assert settings.logging.json is True
    assert settings.allowed_origins == ["https://ledger.example.com"]


def test_database_url_env_overrides_profile(monkeypatch, tmp_path):
    monkeypatch.setenv("LEDGER_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("DATABASE_URL", "sqlite:///override.db")

    settings = load_settings(profile="missing")

    assert settings.database_url == "sqlite:///override.db"


def test_invalid_listing_bounds_rejected(tmp_path):
    (tmp_path / "broken.yml").write_text(
        "listing:\n  default_per_page: 500\n  max_per_page: 100\n",
        encoding="utf-8",
    )

    with pytest.raises(RuntimeError):
        load_settings(profile="broken", config_dir=tmp_path)


def test_non_mapping_profile_rejected(tmp_path):
    (tmp_path / "list.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(RuntimeError):
        load_settings(profile="list", config_dir=tmp_path)
