"""Concurrent scenario execution with per-scenario output capture.

Only used when parallel execution is explicitly enabled: scenarios share the
pooler, so running them together changes the load shape under test.
"""

from __future__ import annotations

import re
import threading
import time
import traceback
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Executor whose worker threads are currently running scenarios, if any
_active: ParallelExecutor | None = None


def get_current_task_name() -> str | None:
    """Name of the scenario running on this thread, or None outside a parallel run."""
    if _active is None:
        return None
    return getattr(_active._local, "name", None)


@dataclass
class _ScenarioLog:
    lines: list[str] = field(default_factory=list)
    state: str = "pending"
    started: float = 0.0
    finished: float = 0.0
    truncated: bool = False

    @property
    def elapsed_s(self) -> float:
        end = self.finished or time.time()
        return end - (self.started or end)


class ParallelExecutor:
    """Runs named scenario tasks on a thread pool.

    Every line a task logs is echoed to stdout as ``[name] line`` and kept in
    that task's buffer, which is written to ``<log_dir>/<phase>/<name>.log``
    once all tasks are done.
    """

    MAX_LINES_PER_TASK = 50000

    def __init__(self, max_workers: int = 2):
        self.max_workers = max_workers
        self._logs: dict[str, _ScenarioLog] = {}
        self._lock = threading.Lock()
        self._local = threading.local()

    def execute_parallel(
        self,
        tasks: dict[str, Callable[[], Any]],
        phase_name: str,
        log_dir: Path | str | None = None,
    ) -> dict[str, Any]:
        """Run all tasks and return their results by name; a task that raises maps to None."""
        global _active

        if not tasks:
            return {}

        self._logs = {name: _ScenarioLog() for name in tasks}
        results: dict[str, Any] = {}
        self._emit(f"\n== {phase_name} ==")

        _active = self
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = {
                    pool.submit(self._run_task, name, task): name
                    for name, task in tasks.items()
                }
                for future in as_completed(futures):
                    name = futures[future]
                    try:
                        results[name] = future.result()
                        self._finish(name, "done")
                    except Exception as exc:
                        results[name] = None
                        self._finish(name, f"crashed: {exc}"[:200])
        finally:
            _active = None

        written = self._write_logs(phase_name, log_dir) if log_dir else {}
        self._emit_summary(phase_name, written)
        return results

    def create_output_callback(self, task_name: str) -> Callable[[str], None]:
        """Return a callback that logs lines on behalf of one task."""
        return lambda message: self._record(task_name, message)

    def _run_task(self, name: str, task: Callable[[], Any]) -> Any:
        self._local.name = name
        with self._lock:
            self._logs[name].state = "running"
            self._logs[name].started = time.time()
        try:
            return task()
        except Exception:
            for line in traceback.format_exc().rstrip().splitlines():
                self._record(name, line)
            raise
        finally:
            self._local.name = None

    def _finish(self, name: str, state: str) -> None:
        with self._lock:
            log = self._logs[name]
            log.state = state
            log.finished = time.time()

    def _record(self, name: str, message: str) -> None:
        line = message.rstrip("\r\n")
        with self._lock:
            log = self._logs.setdefault(name, _ScenarioLog())
            if len(log.lines) < self.MAX_LINES_PER_TASK:
                log.lines.append(line)
            elif not log.truncated:
                log.lines.append(f"[output truncated after {self.MAX_LINES_PER_TASK} lines]")
                log.truncated = True
        self._emit(f"[{name}] {line}".rstrip())

    def _write_logs(self, phase_name: str, log_dir: Path | str) -> dict[str, Path]:
        phase_dir = Path(log_dir) / _slugify(phase_name)
        try:
            phase_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._emit(f"Warning: cannot create {phase_dir}: {e}")
            return {}

        written: dict[str, Path] = {}
        for name, log in self._logs.items():
            path = phase_dir / f"{_slugify(name)}.log"
            try:
                path.write_text("".join(f"{line}\n" for line in log.lines), encoding="utf-8")
            except OSError as e:
                self._emit(f"Warning: cannot write log for {name}: {e}")
                continue
            written[name] = path
        return written

    def _emit_summary(self, phase_name: str, written: dict[str, Path]) -> None:
        self._emit(f"== {phase_name}: summary ==")
        for name, log in self._logs.items():
            self._emit(f"- {name}: {log.state} ({log.elapsed_s:.1f}s)")
            if name in written:
                self._emit(f"  log: {written[name]}")
        self._emit("")

    def _emit(self, text: str) -> None:
        with self._lock:
            print(text, flush=True)


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", value).strip("-").lower()
    return slug or "task"
