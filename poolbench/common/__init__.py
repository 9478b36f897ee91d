"""Shared types for the poolbench harness."""

from .enums import SslMode, VerdictStatus

__all__ = ["SslMode", "VerdictStatus"]
