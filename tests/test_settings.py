import os
from pathlib import Path

import pytest

from roster_enrich.workflows.settings import (
    MIN_SUCCESS_FRACTION,
    PROFILE_CONSTRAINED,
    PROFILE_DESKTOP,
    load_settings,
    profile_names,
    settings_for_profile,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("ROSTER_ENRICH_"):
            monkeypatch.delenv(name, raising=False)


def test_builtin_profiles():
    assert profile_names() == (PROFILE_DESKTOP, PROFILE_CONSTRAINED)
    desktop = settings_for_profile("desktop")
    constrained = settings_for_profile("Constrained")
    assert (desktop.timeout, desktop.batch_size, desktop.pacing_delay) == (5.0, 5, 0.1)
    assert (constrained.timeout, constrained.batch_size, constrained.pacing_delay) == (10.0, 3, 0.3)
    assert constrained.ready_attempts > desktop.ready_attempts
    assert desktop.min_success_fraction == MIN_SUCCESS_FRACTION


def test_unknown_profile_is_rejected():
    with pytest.raises(ValueError):
        settings_for_profile("satellite")


def test_defaults_without_env():
    settings = load_settings(use_dotenv=False)

    assert settings.profile == PROFILE_DESKTOP
    assert settings.directory_ids == ()
    assert settings.max_identifiers == 50
    assert settings.cache_path == Path("run") / "enrich_cache" / "cache_store.json"
    assert not settings.per_entity_cache


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ROSTER_ENRICH_PROFILE", "constrained")
    monkeypatch.setenv("ROSTER_ENRICH_BATCH_SIZE", "2")
    monkeypatch.setenv("ROSTER_ENRICH_PACING", "0")
    monkeypatch.setenv("ROSTER_ENRICH_DIRECTORY_IDS", "500, 501,500,")
    monkeypatch.setenv("ROSTER_ENRICH_MAX_TEAMS", "20")
    monkeypatch.setenv("ROSTER_ENRICH_MIN_SUCCESS", "0.75")
    monkeypatch.setenv("ROSTER_ENRICH_CACHE_PATH", str(tmp_path / "c.json"))
    monkeypatch.setenv("ROSTER_ENRICH_PER_TEAM_CACHE", "yes")

    settings = load_settings(use_dotenv=False)

    assert settings.profile == PROFILE_CONSTRAINED
    assert settings.timeout == 10.0
    assert settings.batch_size == 2
    assert settings.pacing_delay == 0.0
    assert settings.directory_ids == ("500", "501")
    assert settings.max_identifiers == 20
    assert settings.min_success_fraction == 0.75
    assert settings.cache_path == tmp_path / "c.json"
    assert settings.per_entity_cache


def test_explicit_profile_beats_env(monkeypatch):
    monkeypatch.setenv("ROSTER_ENRICH_PROFILE", "constrained")
    assert load_settings(PROFILE_DESKTOP, use_dotenv=False).profile == PROFILE_DESKTOP


def test_bad_values_fall_back(monkeypatch):
    monkeypatch.setenv("ROSTER_ENRICH_BATCH_SIZE", "lots")
    monkeypatch.setenv("ROSTER_ENRICH_TIMEOUT", "")
    monkeypatch.setenv("ROSTER_ENRICH_MIN_SUCCESS", "1.5")

    settings = load_settings(use_dotenv=False)

    assert settings.batch_size == 5
    assert settings.timeout == 5.0
    assert settings.min_success_fraction == MIN_SUCCESS_FRACTION


def test_cache_can_be_disabled(monkeypatch):
    monkeypatch.setenv("ROSTER_ENRICH_CACHE_DISABLE", "1")
    monkeypatch.setenv("ROSTER_ENRICH_CACHE_PATH", "/tmp/ignored.json")

    settings = load_settings(use_dotenv=False)

    assert settings.cache_path is None
    assert not settings.cache_enabled
