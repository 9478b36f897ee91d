"""Shared fixtures.

Tests that need a running pooler and database are skipped unless pytest is
invoked with --pooler:
    pytest --pooler --pooler-config configs/pgagroal.yaml
"""

from __future__ import annotations

import os
import stat
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from poolbench.errors import BenchmarkTimeoutError
from poolbench.run.base import ExecutionOutcome


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--pooler",
        action="store_true",
        default=False,
        help="Run scenario tests against a live pooler",
    )
    parser.addoption(
        "--pooler-config",
        action="store",
        default=None,
        help="Harness config YAML used by --pooler tests",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "pooler: needs a running pooler and database (enable with --pooler)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--pooler", default=False):
        return
    skip_pooler = pytest.mark.skip(reason="needs --pooler")
    for item in items:
        if "pooler" in item.keywords:
            item.add_marker(skip_pooler)


@pytest.fixture
def fake_pgbench(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory writing an executable stand-in for pgbench.

    The script records its arguments to args.txt, its PG* environment to
    env.txt and a copy of any -f script to script.sql, then runs ``body``
    and exits with ``exit_code``.
    """

    def make(exit_code: int = 0, body: str = "", name: str = "pgbench") -> Path:
        path = tmp_path / name
        script = textwrap.dedent(
            f"""\
            #!/bin/sh
            printf '%s\\n' "$@" > "{tmp_path}/args.txt"
            env | grep '^PG' | sort > "{tmp_path}/env.txt"
            while [ $# -gt 0 ]; do
                if [ "$1" = "-f" ]; then cat "$2" > "{tmp_path}/script.sql"; fi
                shift
            done
            """
        )
        script += textwrap.dedent(body)
        script += f"\nexit {exit_code}\n"
        path.write_text(script)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return make


class RecordingRunner:
    """In-memory runner that records calls and returns scripted outcomes."""

    def __init__(
        self,
        behaviour: Callable[[tuple[Any, ...]], bool] | None = None,
    ):
        self.behaviour = behaviour or (lambda args: True)
        self.calls: list[dict[str, Any]] = []

    def execute(
        self,
        target_database: str,
        use_secure_connection: bool,
        client_count: int,
        think_time_ms: int,
        transaction_count: int,
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        args = (
            target_database,
            use_secure_connection,
            client_count,
            think_time_ms,
            transaction_count,
        )
        self.calls.append({"args": args, "timeout": timeout})
        succeeded = self.behaviour(args)
        return ExecutionOutcome(succeeded=succeeded, returncode=0 if succeeded else 1)


def raise_timeout(args: tuple[Any, ...]) -> bool:
    raise BenchmarkTimeoutError(1, "fake")


@pytest.fixture
def recording_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop PG* variables so they do not leak into child environments."""
    for key in list(os.environ):
        if key.startswith("PG") or key == "POOLBENCH_DEBUG":
            monkeypatch.delenv(key, raising=False)
