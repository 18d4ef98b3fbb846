from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RetryConfig(BaseModel):
    """Retry policy with exponential backoff and full jitter.

    Used for establishing the bootstrap session; statements inside a
    provisioning transaction are never retried through this policy.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    max_attempts: int = Field(default=3, ge=1, description="Maximum connection attempts")
    wait_min: float = Field(default=0.5, ge=0, description="Minimum wait time in seconds")
    wait_max: float = Field(default=10.0, ge=0, description="Maximum wait time in seconds")
    multiplier: float = Field(default=1.0, ge=0, description="Wait multiplier")
    exp_base: float = Field(default=2.0, ge=1, description="Exponential base")

    retry_on_exceptions: tuple[type[Exception], ...] | None = Field(
        default=None,
        description="Exception types that trigger retry (None = all exceptions)",
    )
    never_retry_on: tuple[type[Exception], ...] | None = Field(
        default=None,
        description="Exception types never retried, takes precedence over retry_on_exceptions",
    )

    reraise: bool = Field(default=True, description="Reraise the last exception once attempts run out")
