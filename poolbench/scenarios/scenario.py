"""Load scenario definitions."""

from pydantic import BaseModel, ConfigDict, field_validator


class Scenario(BaseModel):
    """One named load shape to run against the pooler.

    Scenarios are immutable and validated on construction, so a bad value
    fails when the suite is defined rather than when it runs.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    target_database: str
    use_secure_connection: bool = True
    client_count: int
    think_time_ms: int = 0
    transaction_count: int

    @field_validator("name", "target_database")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Ensure identifiers are not empty."""
        if not v or not v.strip():
            raise ValueError("value cannot be empty")
        return v

    @field_validator("client_count")
    @classmethod
    def validate_client_count(cls, v: int) -> int:
        """Ensure client_count is positive."""
        if v < 1:
            raise ValueError(f"client_count must be positive (got {v})")
        return v

    @field_validator("transaction_count")
    @classmethod
    def validate_transaction_count(cls, v: int) -> int:
        """Ensure transaction_count is positive."""
        if v < 1:
            raise ValueError(f"transaction_count must be positive (got {v})")
        return v

    @field_validator("think_time_ms")
    @classmethod
    def validate_think_time(cls, v: int) -> int:
        """Ensure think_time_ms is non-negative."""
        if v < 0:
            raise ValueError(f"think_time_ms must be non-negative (got {v})")
        return v

    def describe(self) -> str:
        """Short human-readable load shape."""
        ssl = "ssl" if self.use_secure_connection else "plain"
        return (
            f"{self.client_count} clients x {self.transaction_count} tx, "
            f"think {self.think_time_ms}ms, {ssl} -> {self.target_database}"
        )
