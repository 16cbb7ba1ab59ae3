"""
Configuration for the Triplanetary engine.

Two sources:
- Environment variables (optionally from a .env file via python-dotenv)
  for per-run settings such as the dice seed and the gravity rule variant.
- JSON rules data (combat results table, default ship stats, ordnance specs)
  and map data (celestial bodies) shipped in triplanetary/data/.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import RulesDataError


DATA_DIR = Path(__file__).parent / "data"
DEFAULT_RULES_PATH = DATA_DIR / "rules.json"
DEFAULT_SOLAR_SYSTEM_PATH = DATA_DIR / "solar_system.json"

GRAVITY_MODEL_RADIAL = "radial"
GRAVITY_MODEL_ARROW = "arrow"
GRAVITY_MODELS = (GRAVITY_MODEL_RADIAL, GRAVITY_MODEL_ARROW)

REQUIRED_RULES_SECTIONS = (
    "combat_results_table",
    "combat",
    "default_ship_stats",
    "default_ordnance_inventory",
    "ordnance",
)


@dataclass
class GameConfig:
    """
    Per-game settings.

    Attributes:
        seed: Seed for the dice generator (None = nondeterministic).
        gravity_model: "arrow" (2018 rules) or "radial" (zone wells).
        rules_path: JSON file with combat table and default stats.
        solar_system_path: JSON file with celestial bodies.
        orbital_motion: Advance planets along their orbits each round.
    """
    seed: Optional[int] = None
    gravity_model: str = GRAVITY_MODEL_ARROW
    rules_path: Path = DEFAULT_RULES_PATH
    solar_system_path: Path = DEFAULT_SOLAR_SYSTEM_PATH
    orbital_motion: bool = False

    def __post_init__(self) -> None:
        if self.gravity_model not in GRAVITY_MODELS:
            raise RulesDataError(
                f"Unknown gravity model '{self.gravity_model}', "
                f"expected one of {GRAVITY_MODELS}"
            )
        self.rules_path = Path(self.rules_path)
        self.solar_system_path = Path(self.solar_system_path)

    @classmethod
    def from_env(cls) -> GameConfig:
        """
        Build a config from TRIPLANETARY_* environment variables.

        Loads a .env file first if one is present.
        """
        load_dotenv()

        seed_text = os.getenv("TRIPLANETARY_SEED")
        try:
            seed = int(seed_text) if seed_text else None
        except ValueError as e:
            raise RulesDataError(f"TRIPLANETARY_SEED must be an integer, got '{seed_text}'") from e

        return cls(
            seed=seed,
            gravity_model=os.getenv("TRIPLANETARY_GRAVITY_MODEL", GRAVITY_MODEL_ARROW),
            rules_path=Path(os.getenv("TRIPLANETARY_RULES_PATH", str(DEFAULT_RULES_PATH))),
            solar_system_path=Path(
                os.getenv("TRIPLANETARY_SOLAR_SYSTEM_PATH", str(DEFAULT_SOLAR_SYSTEM_PATH))
            ),
            orbital_motion=os.getenv("TRIPLANETARY_ORBITAL_MOTION", "").lower() in ("1", "true", "yes"),
        )


def load_json_data(filepath: str | Path) -> dict:
    """
    Load a JSON data file.

    Args:
        filepath: Path to the JSON file.

    Returns:
        Parsed dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(filepath, "r", encoding="utf-8") as f:
        return json.load(f)


def load_rules_data(filepath: str | Path = DEFAULT_RULES_PATH) -> dict:
    """
    Load and sanity-check the rules data file.

    Raises:
        RulesDataError: If a required section is missing.
    """
    data = load_json_data(filepath)
    missing = [name for name in REQUIRED_RULES_SECTIONS if name not in data]
    if missing:
        raise RulesDataError(f"Rules data {filepath} is missing sections: {missing}")
    return data


_default_rules: Optional[dict] = None


def default_rules() -> dict:
    """Rules data from the bundled rules.json, loaded once."""
    global _default_rules
    if _default_rules is None:
        _default_rules = load_rules_data(DEFAULT_RULES_PATH)
    return _default_rules
