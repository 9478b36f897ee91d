"""Verdicts for scenario outcomes."""

from .assertion import (
    SUCCESS_NOT_FOUND,
    Verdict,
    assert_outcome,
    setup_error_verdict,
    skipped_verdict,
    timeout_verdict,
)

__all__ = [
    "SUCCESS_NOT_FOUND",
    "Verdict",
    "assert_outcome",
    "setup_error_verdict",
    "skipped_verdict",
    "timeout_verdict",
]
