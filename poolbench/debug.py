"""Opt-in tracing of pgbench invocations and scenario errors.

Enabled with ``poolbench run --debug`` or ``POOLBENCH_DEBUG=1``. Lines are
prefixed with the scenario name while scenarios run in parallel.
"""

import os

DEBUG_ENV_VAR = "POOLBENCH_DEBUG"

_enabled = False


def set_debug(enabled: bool) -> None:
    """Switch tracing on or off; the env var carries the setting to child processes."""
    global _enabled
    _enabled = enabled
    if enabled:
        os.environ[DEBUG_ENV_VAR] = "1"
    else:
        os.environ.pop(DEBUG_ENV_VAR, None)


def is_debug_enabled() -> bool:
    return _enabled or os.getenv(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes")


def debug_print(message: str) -> None:
    if not is_debug_enabled():
        return
    # Imported here since the run package imports this module
    from .run.parallel_executor import get_current_task_name

    scenario = get_current_task_name()
    prefix = f"[{scenario}] " if scenario else ""
    print(f"{prefix}[DEBUG] {message}")


def debug_log_command(command: str, timeout: float | None = None) -> None:
    """Trace a pgbench command line and its time limit."""
    limit = f" (timeout {timeout:g}s)" if timeout else ""
    debug_print(f"pgbench{limit}: {command}")


def debug_log_result(success: bool, stdout: str | None = None) -> None:
    """Trace whether pgbench succeeded, followed by its output."""
    debug_print(f"pgbench {'succeeded' if success else 'failed'}")
    if stdout:
        for line in stdout.rstrip().splitlines():
            debug_print(f"  {line}")
