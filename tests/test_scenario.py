"""Tests for scenario definitions and the canonical catalog."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from poolbench.scenarios import SCENARIOS, Scenario, build_suite, pgagroal_test2_suite
from poolbench.scenarios.catalog import BASELINE, COMBINED, HIGH_CLIENTS, HIGH_TRANSACTIONS


def make(**overrides) -> Scenario:
    params = {
        "name": "s",
        "target_database": "postgres",
        "use_secure_connection": True,
        "client_count": 1,
        "think_time_ms": 0,
        "transaction_count": 1,
    }
    params.update(overrides)
    return Scenario(**params)


class TestScenarioValidation:
    """Invalid load shapes are rejected on construction."""

    def test_minimal_valid_scenario(self):
        scenario = make()
        assert scenario.client_count == 1
        assert scenario.transaction_count == 1

    @pytest.mark.parametrize("clients", [0, -1])
    def test_non_positive_client_count_rejected(self, clients):
        with pytest.raises(ValidationError, match="client_count must be positive"):
            make(client_count=clients)

    @pytest.mark.parametrize("transactions", [0, -10])
    def test_non_positive_transaction_count_rejected(self, transactions):
        with pytest.raises(ValidationError, match="transaction_count must be positive"):
            make(transaction_count=transactions)

    def test_negative_think_time_rejected(self):
        with pytest.raises(ValidationError, match="think_time_ms must be non-negative"):
            make(think_time_ms=-1)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            make(client_count=0)

    @pytest.mark.parametrize("field", ["name", "target_database"])
    def test_empty_identifiers_rejected(self, field):
        with pytest.raises(ValidationError):
            make(**{field: " "})

    def test_scenario_is_immutable(self):
        scenario = make()
        with pytest.raises(ValidationError):
            scenario.client_count = 5

    def test_describe_mentions_load_shape(self):
        text = make(client_count=10, transaction_count=1000).describe()
        assert "10 clients" in text
        assert "1000 tx" in text
        assert "ssl" in text


class TestCatalog:
    """The four pgagroal scenarios."""

    @pytest.mark.parametrize(
        "scenario, clients, transactions",
        [
            (BASELINE, 10, 1000),
            (HIGH_CLIENTS, 50, 1000),
            (HIGH_TRANSACTIONS, 10, 5000),
            (COMBINED, 50, 5000),
        ],
    )
    def test_load_shapes(self, scenario, clients, transactions):
        assert scenario.target_database == "postgres"
        assert scenario.use_secure_connection is True
        assert scenario.think_time_ms == 0
        assert scenario.client_count == clients
        assert scenario.transaction_count == transactions

    def test_suite_registers_all_four_in_order(self):
        suite = pgagroal_test2_suite()
        assert suite.name == "pgagroal_test2"
        assert suite.names == [
            "baseline",
            "high_clients",
            "high_transactions",
            "combined",
        ]
        assert all(case.timeout_s == 60 for case in suite)

    def test_each_call_builds_a_fresh_suite(self):
        first = pgagroal_test2_suite()
        second = pgagroal_test2_suite()
        assert first is not second
        assert [c.scenario for c in first] == list(SCENARIOS)

    def test_build_suite_by_name(self):
        suite = build_suite("pgagroal_test2", timeout_s=30)
        assert len(suite) == 4
        assert all(case.timeout_s == 30 for case in suite)

    def test_build_unknown_suite(self):
        with pytest.raises(ValueError, match="Unknown suite"):
            build_suite("nope")
