"""Tests for the pgbench adapter, using shell scripts in place of pgbench."""

from __future__ import annotations

import sys
import time
from pathlib import Path

import psutil
import pytest

from poolbench.debug import set_debug
from poolbench.errors import BenchmarkSetupError, BenchmarkTimeoutError
from poolbench.run.pgbench import PgbenchRunner

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="needs POSIX process groups"
)


def _is_gone(pid: int) -> bool:
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


def _wait_for_file(path: Path, timeout: float = 5.0) -> str:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if path.exists() and path.read_text().strip():
            return path.read_text().strip()
        time.sleep(0.05)
    raise AssertionError(f"{path} was not written")


class TestCommandConstruction:
    def test_arguments(self, fake_pgbench, tmp_path, clean_env):
        binary = fake_pgbench()
        runner = PgbenchRunner(host="pooler", port=2345, user="bench", binary=str(binary))

        outcome = runner.execute("postgres", True, 10, 0, 1000)

        assert outcome.succeeded
        args = (tmp_path / "args.txt").read_text().split()
        assert args == [
            "-n",
            "-t",
            "1000",
            "-c",
            "10",
            "-j",
            "5",
            "-h",
            "pooler",
            "-p",
            "2345",
            "-U",
            "bench",
            "-b",
            "tpcb-like",
            "postgres",
        ]
        assert "-c 10" in outcome.command

    @pytest.mark.parametrize(
        "clients, max_threads, expected",
        [(10, 8, 5), (50, 8, 5), (1, 8, 1), (7, 8, 7), (13, 8, 1), (64, 8, 8), (50, 1, 1)],
    )
    def test_thread_count_divides_clients(self, clients, max_threads, expected):
        runner = PgbenchRunner(max_threads=max_threads)
        threads = runner.thread_count(clients)
        assert threads == expected
        assert clients % threads == 0

    def test_secure_connection_sets_sslmode(self, fake_pgbench, tmp_path, clean_env):
        runner = PgbenchRunner(binary=str(fake_pgbench()), password="secret")
        runner.execute("postgres", True, 1, 0, 1)
        env = (tmp_path / "env.txt").read_text().splitlines()
        assert "PGSSLMODE=require" in env
        assert "PGPASSWORD=secret" in env

    def test_plain_connection_disables_ssl(self, fake_pgbench, tmp_path, clean_env):
        runner = PgbenchRunner(binary=str(fake_pgbench()))
        runner.execute("postgres", False, 1, 0, 1)
        env = (tmp_path / "env.txt").read_text().splitlines()
        assert "PGSSLMODE=disable" in env
        assert not any(line.startswith("PGPASSWORD=") for line in env)

    def test_think_time_uses_custom_script(self, fake_pgbench, tmp_path, clean_env):
        runner = PgbenchRunner(binary=str(fake_pgbench()), scale=20)
        runner.execute("postgres", True, 2, 250, 10)

        args = (tmp_path / "args.txt").read_text().split()
        assert "-f" in args
        assert "-b" not in args
        assert args[args.index("-s") + 1] == "20"
        script_path = Path(args[args.index("-f") + 1])
        assert not script_path.exists()

        script = (tmp_path / "script.sql").read_text()
        assert "UPDATE pgbench_accounts" in script
        assert script.rstrip().endswith("\\sleep 250 ms")


class TestOutcome:
    @pytest.mark.parametrize("exit_code", [1, 2])
    def test_non_zero_exit_is_failure_not_exception(self, fake_pgbench, exit_code, clean_env):
        runner = PgbenchRunner(binary=str(fake_pgbench(exit_code=exit_code)))
        outcome = runner.execute("postgres", True, 1, 0, 1)
        assert not outcome.succeeded
        assert outcome.returncode == exit_code

    def test_killed_by_signal_is_failure(self, fake_pgbench, clean_env):
        runner = PgbenchRunner(binary=str(fake_pgbench(body="kill -9 $$\n")))
        outcome = runner.execute("postgres", True, 1, 0, 1)
        assert not outcome.succeeded
        assert outcome.returncode < 0

    def test_failure_output_is_logged(self, fake_pgbench, clean_env):
        lines: list[str] = []
        binary = fake_pgbench(exit_code=1, body='echo "connection refused"\n')
        runner = PgbenchRunner(binary=str(binary), output_callback=lines.append)
        runner.execute("postgres", True, 1, 0, 1)
        assert any("exited with status 1" in line for line in lines)
        assert any("connection refused" in line for line in lines)

    def test_debug_traces_command_and_output(self, fake_pgbench, clean_env, capsys):
        binary = fake_pgbench(body='echo "tps = 100"\n')
        runner = PgbenchRunner(binary=str(binary))
        set_debug(True)
        try:
            runner.execute("postgres", True, 1, 0, 1, timeout=5)
        finally:
            set_debug(False)

        out = capsys.readouterr().out
        assert "[DEBUG] pgbench (timeout 5s): " in out
        assert "[DEBUG] pgbench succeeded" in out
        assert "[DEBUG]   tps = 100" in out

    def test_with_output_callback_returns_copy(self):
        lines: list[str] = []
        runner = PgbenchRunner()
        tagged = runner.with_output_callback(lines.append)
        tagged._log("hello")
        assert lines == ["hello"]
        assert runner._output_callback is None


class TestSetupErrors:
    def test_missing_binary(self, tmp_path):
        runner = PgbenchRunner(binary=str(tmp_path / "does-not-exist"))
        with pytest.raises(BenchmarkSetupError, match="not found"):
            runner.execute("postgres", True, 1, 0, 1)

    def test_binary_not_on_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PATH", str(tmp_path))
        runner = PgbenchRunner(binary="pgbench")
        with pytest.raises(BenchmarkSetupError):
            runner.execute("postgres", True, 1, 0, 1)

    def test_not_executable(self, tmp_path):
        path = tmp_path / "pgbench"
        path.write_text("#!/bin/sh\nexit 0\n")
        path.chmod(0o644)
        runner = PgbenchRunner(binary=str(path))
        with pytest.raises(BenchmarkSetupError):
            runner.execute("postgres", True, 1, 0, 1)


class TestTimeout:
    def test_timeout_terminates_process_group(self, fake_pgbench, tmp_path, clean_env):
        body = f"""\
            echo $$ > "{tmp_path}/parent.pid"
            sleep 30 &
            echo $! > "{tmp_path}/child.pid"
            wait
            """
        runner = PgbenchRunner(binary=str(fake_pgbench(body=body)), grace_period_s=2)

        started = time.monotonic()
        with pytest.raises(BenchmarkTimeoutError) as excinfo:
            runner.execute("postgres", True, 1, 0, 1, timeout=1)
        assert time.monotonic() - started < 10
        assert excinfo.value.timeout_s == 1

        parent = int(_wait_for_file(tmp_path / "parent.pid"))
        child = int(_wait_for_file(tmp_path / "child.pid"))
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline and not (_is_gone(parent) and _is_gone(child)):
            time.sleep(0.05)
        assert _is_gone(parent)
        assert _is_gone(child)

    def test_sigterm_ignored_falls_back_to_kill(self, fake_pgbench, tmp_path, clean_env):
        body = f"""\
            trap '' TERM
            echo $$ > "{tmp_path}/parent.pid"
            while true; do sleep 0.1; done
            """
        runner = PgbenchRunner(binary=str(fake_pgbench(body=body)), grace_period_s=0.5)

        with pytest.raises(BenchmarkTimeoutError):
            runner.execute("postgres", True, 1, 0, 1, timeout=1)

        assert _is_gone(int(_wait_for_file(tmp_path / "parent.pid")))

    def test_fast_run_within_timeout(self, fake_pgbench, clean_env):
        runner = PgbenchRunner(binary=str(fake_pgbench()))
        outcome = runner.execute("postgres", True, 1, 0, 1, timeout=30)
        assert outcome.succeeded
        assert outcome.elapsed_s < 30


def test_from_config():
    from poolbench.config import default_config

    cfg = default_config()
    cfg["pooler"]["password"] = "pw"
    runner = PgbenchRunner.from_config(cfg)
    assert runner.port == 2345
    assert runner.password == "pw"
    assert runner.binary == "pgbench"
    assert runner.scale == 1
    assert runner.build_env(True)["PGSSLMODE"] == "require"
