"""
Tests for environment configuration and rules data loading.

Run with: python -m pytest tests/test_config.py -v
"""

import json
from dataclasses import fields

import pytest

from triplanetary.config import (
    DEFAULT_RULES_PATH,
    DEFAULT_SOLAR_SYSTEM_PATH,
    GameConfig,
    load_rules_data,
)
from triplanetary.errors import RulesDataError
from triplanetary.ship import ShipStats


ENV_VARS = (
    "TRIPLANETARY_SEED",
    "TRIPLANETARY_GRAVITY_MODEL",
    "TRIPLANETARY_RULES_PATH",
    "TRIPLANETARY_SOLAR_SYSTEM_PATH",
    "TRIPLANETARY_ORBITAL_MOTION",
)


@pytest.fixture
def clean_env(monkeypatch):
    """No TRIPLANETARY_* variables set."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestGameConfig:

    def test_defaults(self):
        config = GameConfig()
        assert config.seed is None
        assert config.gravity_model == "arrow"
        assert config.rules_path == DEFAULT_RULES_PATH
        assert config.solar_system_path == DEFAULT_SOLAR_SYSTEM_PATH
        assert config.orbital_motion is False

    def test_unknown_gravity_model_rejected(self):
        with pytest.raises(RulesDataError):
            GameConfig(gravity_model="newtonian")

    def test_from_env(self, clean_env):
        clean_env.setenv("TRIPLANETARY_SEED", "1234")
        clean_env.setenv("TRIPLANETARY_GRAVITY_MODEL", "radial")
        clean_env.setenv("TRIPLANETARY_ORBITAL_MOTION", "true")
        config = GameConfig.from_env()
        assert config.seed == 1234
        assert config.gravity_model == "radial"
        assert config.orbital_motion is True

    def test_from_env_defaults(self, clean_env):
        config = GameConfig.from_env()
        assert config.seed is None
        assert config.gravity_model == "arrow"
        assert config.orbital_motion is False

    def test_bad_seed(self, clean_env):
        clean_env.setenv("TRIPLANETARY_SEED", "lucky")
        with pytest.raises(RulesDataError):
            GameConfig.from_env()


class TestRulesData:

    def test_bundled_rules_load(self):
        rules = load_rules_data()
        assert rules["combat"]["destruction_threshold"] == 6
        assert rules["default_ship_stats"]["max_thrust"] == 2

    def test_default_ship_stats_match_ship_fields(self):
        rules = load_rules_data()
        assert set(rules["default_ship_stats"]) == {f.name for f in fields(ShipStats)}

    def test_missing_section(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"combat": {}}))
        with pytest.raises(RulesDataError, match="missing sections"):
            load_rules_data(path)
