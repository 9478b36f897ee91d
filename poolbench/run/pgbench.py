"""pgbench adapter: runs one load shape through the pooler."""

from __future__ import annotations

import contextlib
import copy
import os
import shlex
import signal
import subprocess
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import psutil

from ..common import SslMode
from ..debug import debug_log_command, debug_log_result
from ..errors import BenchmarkSetupError, BenchmarkTimeoutError
from ..util import Timer, resolve_executable
from .base import ExecutionOutcome

# Same statements as pgbench's builtin tpcb-like script. Used when a think
# time has to be appended, since builtin scripts cannot be extended.
TPCB_LIKE_SCRIPT = """\\set aid random(1, 100000 * :scale)
\\set bid random(1, 1 * :scale)
\\set tid random(1, 10 * :scale)
\\set delta random(-5000, 5000)
BEGIN;
UPDATE pgbench_accounts SET abalance = abalance + :delta WHERE aid = :aid;
SELECT abalance FROM pgbench_accounts WHERE aid = :aid;
UPDATE pgbench_tellers SET tbalance = tbalance + :delta WHERE tid = :tid;
UPDATE pgbench_branches SET bbalance = bbalance + :delta WHERE bid = :bid;
INSERT INTO pgbench_history (tid, bid, aid, delta, mtime) VALUES (:tid, :bid, :aid, :delta, CURRENT_TIMESTAMP);
END;
"""

OUTPUT_TAIL_LINES = 20


class PgbenchRunner:
    """Runs pgbench against a database behind the pooler.

    Each call spawns one pgbench process in its own session so that a
    timeout can take down the whole process group.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 2345,
        user: str = "postgres",
        password: str | None = None,
        binary: str = "pgbench",
        max_threads: int = 8,
        scale: int = 1,
        grace_period_s: float = 5.0,
        extra_env: dict[str, str] | None = None,
        output_callback: Callable[[str], None] | None = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.binary = binary
        self.max_threads = max_threads
        self.scale = scale
        self.grace_period_s = grace_period_s
        self.extra_env = extra_env or {}
        self._output_callback = output_callback

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        output_callback: Callable[[str], None] | None = None,
    ) -> PgbenchRunner:
        """Create a runner from a loaded harness configuration."""
        pooler = config["pooler"]
        pgbench = config["pgbench"]
        return cls(
            host=pooler["host"],
            port=pooler["port"],
            user=pooler["user"],
            password=pooler.get("password"),
            binary=pgbench["binary"],
            max_threads=pgbench["max_threads"],
            scale=pgbench["scale"],
            grace_period_s=pgbench["grace_period_s"],
            extra_env=pgbench.get("extra_env"),
            output_callback=output_callback,
        )

    def with_output_callback(
        self, output_callback: Callable[[str], None] | None
    ) -> PgbenchRunner:
        """Return a copy whose output goes to the given callback."""
        clone = copy.copy(self)
        clone._output_callback = output_callback
        return clone

    def _log(self, message: str) -> None:
        """Route output to the parallel executor when one is attached."""
        if self._output_callback:
            self._output_callback(message)
        else:
            print(message)

    def thread_count(self, client_count: int) -> int:
        """
        Worker threads for pgbench's -j option.

        pgbench requires the client count to be a multiple of the thread
        count, so this is the largest divisor of client_count that does not
        exceed max_threads.
        """
        limit = max(1, min(client_count, self.max_threads))
        for threads in range(limit, 0, -1):
            if client_count % threads == 0:
                return threads
        return 1

    def build_command(
        self,
        binary: str,
        target_database: str,
        client_count: int,
        transaction_count: int,
        script_path: Path | None = None,
    ) -> list[str]:
        """Assemble the pgbench argument vector."""
        cmd = [
            binary,
            "-n",
            "-t",
            str(transaction_count),
            "-c",
            str(client_count),
            "-j",
            str(self.thread_count(client_count)),
            "-h",
            self.host,
            "-p",
            str(self.port),
            "-U",
            self.user,
        ]
        if script_path is not None:
            # Custom scripts do not detect the scale, so :scale would default to 1
            cmd.extend(["-s", str(self.scale), "-f", str(script_path)])
        else:
            cmd.extend(["-b", "tpcb-like"])
        cmd.append(target_database)
        return cmd

    def build_env(self, use_secure_connection: bool) -> dict[str, str]:
        """Child environment carrying the libpq connection settings."""
        env = dict(os.environ)
        env.update(self.extra_env)
        env["PGSSLMODE"] = str(SslMode.for_connection(use_secure_connection))
        if self.password:
            env["PGPASSWORD"] = self.password
        return env

    def execute(
        self,
        target_database: str,
        use_secure_connection: bool,
        client_count: int,
        think_time_ms: int,
        transaction_count: int,
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        """Run pgbench once and report whether it exited successfully."""
        binary = resolve_executable(self.binary)
        if binary is None:
            raise BenchmarkSetupError(
                f"pgbench executable not found or not executable: {self.binary}"
            )

        script_path = (
            self._write_think_time_script(think_time_ms) if think_time_ms > 0 else None
        )
        try:
            cmd = self.build_command(
                binary, target_database, client_count, transaction_count, script_path
            )
            command = shlex.join(cmd)
            debug_log_command(command, timeout)

            with Timer(command) as timer:
                returncode, output = self._run(
                    cmd, self.build_env(use_secure_connection), timeout, command
                )
        finally:
            if script_path is not None:
                script_path.unlink(missing_ok=True)

        succeeded = returncode == 0
        debug_log_result(succeeded, stdout=output)
        if not succeeded:
            self._log(f"pgbench exited with status {returncode}")
            for line in output.splitlines()[-OUTPUT_TAIL_LINES:]:
                self._log(f"  {line}")

        return ExecutionOutcome(
            succeeded=succeeded,
            returncode=returncode,
            elapsed_s=timer.elapsed,
            command=command,
        )

    def _run(
        self,
        cmd: list[str],
        env: dict[str, str],
        timeout: float | None,
        command: str,
    ) -> tuple[int, str]:
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise BenchmarkSetupError(f"Failed to start pgbench: {e}") from e

        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._terminate(proc)
            self._log(f"pgbench terminated after {timeout:g}s timeout")
            raise BenchmarkTimeoutError(timeout or 0.0, command) from None

        return proc.returncode, output or ""

    def _terminate(self, proc: subprocess.Popen) -> None:
        """Stop pgbench and everything it spawned so no pooler connection leaks."""
        try:
            descendants = psutil.Process(proc.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            descendants = []

        with contextlib.suppress(ProcessLookupError):
            os.killpg(proc.pid, signal.SIGTERM)
        try:
            proc.wait(timeout=self.grace_period_s)
        except subprocess.TimeoutExpired:
            with contextlib.suppress(ProcessLookupError):
                os.killpg(proc.pid, signal.SIGKILL)
            proc.wait()

        # Descendants that moved to another process group
        _, alive = psutil.wait_procs(descendants, timeout=self.grace_period_s)
        for child in alive:
            with contextlib.suppress(psutil.NoSuchProcess):
                child.kill()

        # Drain and close the pipe
        proc.communicate()

    @staticmethod
    def _write_think_time_script(think_time_ms: int) -> Path:
        with tempfile.NamedTemporaryFile(
            mode="w",
            prefix="poolbench-",
            suffix=".sql",
            delete=False,
            encoding="utf-8",
        ) as handle:
            handle.write(TPCB_LIKE_SCRIPT)
            handle.write(f"\\sleep {think_time_ms} ms\n")
        return Path(handle.name)
