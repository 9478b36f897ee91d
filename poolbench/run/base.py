"""Benchmark runner contract shared by all adapters."""

from __future__ import annotations

import contextlib
import multiprocessing
from collections.abc import Callable
from dataclasses import dataclass
from multiprocessing.connection import Connection
from typing import Any, Protocol, runtime_checkable

import psutil

from ..errors import BenchmarkSetupError, BenchmarkTimeoutError
from ..util import Timer


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of one benchmark execution.

    Only ``succeeded`` decides the verdict; the rest is kept for diagnostics.
    """

    succeeded: bool
    returncode: int | None = None
    elapsed_s: float = 0.0
    command: str = ""


@runtime_checkable
class BenchmarkRunner(Protocol):
    """Anything that can run one load shape against a target database."""

    def execute(
        self,
        target_database: str,
        use_secure_connection: bool,
        client_count: int,
        think_time_ms: int,
        transaction_count: int,
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        """
        Run the benchmark once.

        Returns:
            ExecutionOutcome; a benchmark-level failure is a normal
            ``succeeded=False`` result, never an exception.

        Raises:
            BenchmarkSetupError: the benchmark could not be started
            BenchmarkTimeoutError: the run exceeded ``timeout`` and was stopped
        """
        ...


BenchmarkCallable = Callable[[str, bool, int, int, int], bool]


class CallableRunner:
    """Adapt a plain ``fn(database, secure, clients, think_ms, transactions) -> bool``.

    The call runs in a forked child process so that a timeout can stop it,
    together with anything it spawned, before the next scenario starts.
    The return value and any exception travel back over a pipe.
    """

    def __init__(
        self,
        fn: BenchmarkCallable,
        name: str | None = None,
        grace_period_s: float = 5.0,
    ):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "callable")
        self.grace_period_s = grace_period_s

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
        command = f"{self.name}{args}"
        ctx = multiprocessing.get_context("fork")
        receiver, sender = ctx.Pipe(duplex=False)
        worker = ctx.Process(
            target=_call_in_child,
            args=(self.fn, args, sender),
            name=f"runner-{self.name}",
        )

        with Timer(command) as timer:
            worker.start()
            sender.close()
            worker.join(timeout)
            if worker.is_alive():
                self._terminate(worker)
                receiver.close()
                raise BenchmarkTimeoutError(timeout or 0.0, command)

        try:
            kind, value = receiver.recv()
        except EOFError:
            kind, value = "exit", None
        finally:
            receiver.close()

        if kind == "error":
            if isinstance(value, OSError):
                raise BenchmarkSetupError(
                    f"{self.name} could not be started: {value}"
                ) from value
            raise value

        # A child that died without reporting is a failed run
        succeeded = kind == "value" and bool(value)
        return ExecutionOutcome(
            succeeded=succeeded,
            returncode=worker.exitcode if kind == "exit" else (0 if succeeded else 1),
            elapsed_s=timer.elapsed,
            command=command,
        )

    def _terminate(self, worker: multiprocessing.process.BaseProcess) -> None:
        """Stop the worker process and every process it started."""
        try:
            descendants = psutil.Process(worker.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            descendants = []

        worker.terminate()
        worker.join(self.grace_period_s)
        if worker.is_alive():
            worker.kill()
            worker.join()

        for child in descendants:
            with contextlib.suppress(psutil.NoSuchProcess):
                child.terminate()
        _, alive = psutil.wait_procs(descendants, timeout=self.grace_period_s)
        for child in alive:
            with contextlib.suppress(psutil.NoSuchProcess):
                child.kill()


def _call_in_child(
    fn: BenchmarkCallable, args: tuple[Any, ...], sender: Connection
) -> None:
    try:
        message = ("value", bool(fn(*args)))
    except Exception as exc:
        message = ("error", exc)
    try:
        sender.send(message)
    except Exception:
        # The exception itself may not pickle
        error = message[1]
        sender.send(("error", RuntimeError(f"{type(error).__name__}: {error}")))
    finally:
        sender.close()
