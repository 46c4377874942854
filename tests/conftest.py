from __future__ import annotations

import os
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure():
    os.environ.setdefault("PYVISTA_OFF_SCREEN", "true")
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep stackloft.cfg out of the real home directory."""
    home = tmp_path / "stackloft-home"
    monkeypatch.setenv("STACKLOFT_HOME", str(home))
    return home


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def unit_square() -> np.ndarray:
    return np.array([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])


@pytest.fixture
def guard_square() -> np.ndarray:
    return np.array([(-2.0, -2.0), (2.0, -2.0), (2.0, 2.0), (-2.0, 2.0)])
