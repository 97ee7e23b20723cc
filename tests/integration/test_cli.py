"""Tests for the ``python -m urlindexer`` command line."""

from __future__ import annotations

import json
import subprocess
import sys


def _run(env: dict[str, str], *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "urlindexer", *args],
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        timeout=30,
        env=env,
    )


class TestCli:
    def test_index_then_query(self, subprocess_env: dict[str, str]) -> None:
        result = _run(
            subprocess_env,
            "index",
            "https://domain.com/api?a=b&c=d",
            "--id",
            "r1",
            "--category",
            "saved-requests",
        )
        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout)["inserted"] == 8

        result = _run(subprocess_env, "query", "domain.com")
        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout) == {"r1": "saved"}

        result = _run(subprocess_env, "query", "api", "--detailed", "--category", "history")
        assert json.loads(result.stdout) == {}

    def test_delete_and_count(self, subprocess_env: dict[str, str]) -> None:
        _run(subprocess_env, "index", "https://domain.com/", "--id", "r1", "--category", "saved")
        _run(subprocess_env, "index", "https://domain.com/", "--id", "r2", "--category", "history")

        result = _run(subprocess_env, "delete", "r1")
        assert json.loads(result.stdout) == {"removed": 3}

        result = _run(subprocess_env, "count")
        assert json.loads(result.stdout) == {"entries": 3}

        result = _run(subprocess_env, "clear", "--category", "history")
        assert json.loads(result.stdout) == {"removed": 3}

    def test_unopenable_store_exits_non_zero(self, tmp_path, subprocess_env: dict[str, str]) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        env = {**subprocess_env, "URLINDEXER__STORE__DB_PATH": str(blocker / "index.db")}

        result = _run(env, "count")

        assert result.returncode == 1
        assert "STORE_UNAVAILABLE" in result.stderr

    def test_bad_config_type_crashes(self, subprocess_env: dict[str, str]) -> None:
        env = {**subprocess_env, "URLINDEXER__INDEXER__DEBOUNCE_MS": "soon"}
        result = _run(env, "count")
        assert result.returncode != 0
