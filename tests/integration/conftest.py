"""Integration test fixtures.

Integration tests use file-backed databases under ``tmp_path`` and run the
command line entry point in a subprocess.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "data" / "request-index.db")


@pytest.fixture()
def subprocess_env(db_path: str) -> dict[str, str]:
    """Environment pointing the CLI at a temporary database."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("URLINDEXER__")}
    env["URLINDEXER__STORE__DB_PATH"] = db_path
    env["URLINDEXER__LOGGING__LEVEL"] = "WARNING"
    return env
