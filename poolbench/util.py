"""Utility functions for the pooler benchmark harness."""

import json
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any


class Timer:
    """Context manager for timing operations."""

    def __init__(self, description: str = "Operation"):
        self.description = description
        self.start_time: float = 0.0
        self.end_time: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Return elapsed time in seconds."""
        if self.end_time == 0.0 and self.start_time > 0.0:
            return time.perf_counter() - self.start_time
        return self.end_time - self.start_time


def safe_command(cmd: list[str], timeout: float | None = None) -> dict[str, Any]:
    """
    Execute a short-lived command and return a structured result.

    Returns:
        Dict with keys: success, stdout, stderr, returncode, elapsed_s, command
    """
    start_time = time.perf_counter()
    command = " ".join(cmd)

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        return {
            "success": result.returncode == 0,
            "stdout": result.stdout,
            "stderr": result.stderr,
            "returncode": result.returncode,
            "elapsed_s": time.perf_counter() - start_time,
            "command": command,
        }
    except subprocess.TimeoutExpired:
        stderr = f"Command timed out after {timeout}s"
    except OSError as e:
        stderr = str(e)

    return {
        "success": False,
        "stdout": "",
        "stderr": stderr,
        "returncode": -1,
        "elapsed_s": time.perf_counter() - start_time,
        "command": command,
    }


def resolve_executable(name_or_path: str) -> str | None:
    """Return the absolute path of an executable, or None if it cannot be found."""
    if "/" in name_or_path:
        path = Path(name_or_path).expanduser()
        if path.is_file() and shutil.which(str(path)):
            return str(path)
        return None
    return shutil.which(name_or_path)


def ensure_directory(path: str | Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def save_json(data: Any, path: str | Path, indent: int = 2) -> None:
    """Save data as JSON file."""
    filepath = Path(path)
    ensure_directory(filepath.parent)

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

