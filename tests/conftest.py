# Ensure `import storedpng` works from a fresh clone:
# put repo/python on sys.path so the package is importable without prior install.
import os
import sys
from pathlib import Path

import pytest


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _ensure_python_path():
    pkg_dir = _repo_root() / "python"
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


_ensure_python_path()


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: slow tests")


@pytest.fixture(autouse=True)
def _clean_encoder_env(monkeypatch):
    """Keep STOREDPNG_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("STOREDPNG_"):
            monkeypatch.delenv(key, raising=False)
