from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from stackloft.loft.anchor_resample import ANCHOR_EPSILON
from stackloft.loft.strategies import LoftStrategy

CONFIG_HOME_ENV = "STACKLOFT_HOME"
DEFAULT_CONFIG = {
    "_comment": (
        "default_strategy: perimeter-walk, anchor-resample or uniform-resample. "
        "anchor_epsilon is an absolute distance in model units."
    ),
    "default_strategy": LoftStrategy.PERIMETER_WALK.value,
    "anchor_epsilon": ANCHOR_EPSILON,
    "units": "meters",
}
_UNIT_LABELS = {
    "millimeters": "mm",
    "meters": "m",
    "feet": "ft",
    "inches": "in",
}


@dataclass(frozen=True)
class LoftSettings:
    """Resolved settings from stackloft.cfg."""

    default_strategy: LoftStrategy
    anchor_epsilon: float
    units: str
    unit_label: str


def config_dir() -> Path:
    override = os.environ.get(CONFIG_HOME_ENV)
    if override:
        return Path(override)
    return Path.home() / ".stackloft"


def config_file() -> Path:
    return config_dir() / "stackloft.cfg"


def ensure_user_config() -> None:
    """Ensure stackloft.cfg exists with sane defaults."""

    try:
        config_dir().mkdir(parents=True, exist_ok=True)
    except OSError:
        return

    path = config_file()
    if path.exists():
        return

    try:
        path.write_text(json.dumps(DEFAULT_CONFIG, indent=2) + "\n")
    except OSError:
        return


def _load_user_config() -> Dict[str, Any]:
    ensure_user_config()
    try:
        data = json.loads(config_file().read_text())
    except (OSError, json.JSONDecodeError):
        return DEFAULT_CONFIG.copy()
    if not isinstance(data, dict):
        return DEFAULT_CONFIG.copy()
    return data


def get_loft_settings() -> LoftSettings:
    raw = _load_user_config()

    try:
        strategy = LoftStrategy.parse(raw.get("default_strategy", DEFAULT_CONFIG["default_strategy"]))
    except ValueError:
        strategy = LoftStrategy.PERIMETER_WALK

    try:
        epsilon = float(raw.get("anchor_epsilon", ANCHOR_EPSILON))
    except (TypeError, ValueError):
        epsilon = ANCHOR_EPSILON
    if not epsilon > 0:
        epsilon = ANCHOR_EPSILON

    units = str(raw.get("units", DEFAULT_CONFIG["units"])).strip().lower()
    if units not in _UNIT_LABELS:
        units = DEFAULT_CONFIG["units"]

    return LoftSettings(
        default_strategy=strategy,
        anchor_epsilon=epsilon,
        units=units,
        unit_label=_UNIT_LABELS[units],
    )
