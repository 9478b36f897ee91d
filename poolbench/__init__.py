"""Benchmark harness that checks a PostgreSQL connection pooler with pgbench."""

__version__ = "0.1.0"
