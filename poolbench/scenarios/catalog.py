"""The pgagroal load scenarios.

All four run against the ``postgres`` database over a secure connection
with no think time. Only client count and transaction volume vary.
"""

from ..config import DEFAULT_TIMEOUT_S
from .scenario import Scenario
from .suite import Suite

SUITE_NAME = "pgagroal_test2"
TARGET_DATABASE = "postgres"

BASELINE = Scenario(
    name="baseline",
    target_database=TARGET_DATABASE,
    use_secure_connection=True,
    client_count=10,
    think_time_ms=0,
    transaction_count=1000,
)

HIGH_CLIENTS = Scenario(
    name="high_clients",
    target_database=TARGET_DATABASE,
    use_secure_connection=True,
    client_count=50,
    think_time_ms=0,
    transaction_count=1000,
)

HIGH_TRANSACTIONS = Scenario(
    name="high_transactions",
    target_database=TARGET_DATABASE,
    use_secure_connection=True,
    client_count=10,
    think_time_ms=0,
    transaction_count=5000,
)

COMBINED = Scenario(
    name="combined",
    target_database=TARGET_DATABASE,
    use_secure_connection=True,
    client_count=50,
    think_time_ms=0,
    transaction_count=5000,
)

SCENARIOS: tuple[Scenario, ...] = (BASELINE, HIGH_CLIENTS, HIGH_TRANSACTIONS, COMBINED)


def pgagroal_test2_suite(timeout_s: int = DEFAULT_TIMEOUT_S) -> Suite:
    """Build the suite with all four scenarios registered in order."""
    suite = Suite(SUITE_NAME, default_timeout_s=timeout_s)
    for scenario in SCENARIOS:
        suite.register(scenario)
    return suite


SUITE_BUILDERS = {
    SUITE_NAME: pgagroal_test2_suite,
}


def build_suite(name: str = SUITE_NAME, timeout_s: int = DEFAULT_TIMEOUT_S) -> Suite:
    """
    Build a known suite by name.

    Raises:
        ValueError: If no suite with that name exists
    """
    if name not in SUITE_BUILDERS:
        available = ", ".join(sorted(SUITE_BUILDERS))
        raise ValueError(f"Unknown suite: {name}. Available: {available}")
    return SUITE_BUILDERS[name](timeout_s)
