"""Load scenarios and the suites that group them."""

from .catalog import SCENARIOS, build_suite, pgagroal_test2_suite
from .scenario import Scenario
from .suite import Suite, SuiteCase, SuiteResult

__all__ = [
    "Scenario",
    "Suite",
    "SuiteCase",
    "SuiteResult",
    "SCENARIOS",
    "build_suite",
    "pgagroal_test2_suite",
]
