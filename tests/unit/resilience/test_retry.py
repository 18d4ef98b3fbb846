from __future__ import annotations

from typing import Literal

import pytest
from tenacity import RetryCallState

from clusterroute.config.retry import RetryConfig
from clusterroute.core.exceptions import SessionError
from clusterroute.resilience.retry import log_retry_attempt, retry


@pytest.fixture
def connect_retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=3,
        wait_min=0.01,
        wait_max=0.02,
        multiplier=1.0,
        exp_base=2.0,
        retry_on_exceptions=(ConnectionError, TimeoutError),
        never_retry_on=None,
        reraise=True,
    )


class TestRetrySync:
    """Test the blocking wrapper used for session establishment."""

    def test_recovers_from_transient_connect_failures(self, connect_retry_config: RetryConfig) -> None:
        """Verify a connect that fails twice with a transport error succeeds on the third attempt.

        Arrange
        -------
        - Configure retry with max_attempts=3 on ConnectionError/TimeoutError
        - Create a connect function failing with ConnectionError, then TimeoutError

        Act
        ---
        - Invoke the wrapped function

        Assert
        ------
        - The connection object of the third attempt is returned
        - The function ran exactly 3 times
        """
        errors: list[type[Exception]] = [ConnectionError, TimeoutError]
        call_count = 0

        def connect(host: str, port: int) -> str:
            nonlocal call_count
            call_count += 1
            if errors:
                raise errors.pop(0)(f"cannot reach {host}:{port}")
            return f"connection to {host}:{port}"

        result = retry(connect_retry_config)(connect)("db-1", port=3306)

        assert result == "connection to db-1:3306"
        assert call_count == 3

    def test_raises_last_error_when_attempts_run_out(self, connect_retry_config: RetryConfig) -> None:
        """Verify the final transport error reaches the caller unchanged."""
        call_count = 0

        @retry(connect_retry_config)
        def always_unreachable() -> None:
            nonlocal call_count
            call_count += 1
            raise ConnectionError(f"attempt {call_count}")

        with pytest.raises(ConnectionError, match="attempt 3"):
            always_unreachable()

        assert call_count == 3

    def test_server_errors_are_not_retried(self, connect_retry_config: RetryConfig) -> None:
        """Verify errors outside retry_on_exceptions propagate after a single attempt.

        Access denied and similar server answers are final; retrying them only
        delays the failure.
        """
        call_count = 0

        @retry(connect_retry_config)
        def access_denied() -> None:
            nonlocal call_count
            call_count += 1
            raise SessionError("Access denied for user 'root'", 1045)

        with pytest.raises(SessionError, match="Access denied"):
            access_denied()

        assert call_count == 1

    def test_never_retry_on_takes_precedence(self, connect_retry_config: RetryConfig) -> None:
        call_count = 0
        config = connect_retry_config.model_copy(update={"never_retry_on": (TimeoutError,)})

        @retry(config)
        def times_out() -> None:
            nonlocal call_count
            call_count += 1
            raise TimeoutError("handshake timed out")

        with pytest.raises(TimeoutError):
            times_out()

        assert call_count == 1

    def test_before_sleep_receives_failed_attempts(self, connect_retry_config: RetryConfig) -> None:
        """Verify the before_sleep hook runs once per failed attempt that is retried."""
        attempts: list[int] = []
        call_count = 0

        def record(retry_state: RetryCallState) -> None:
            attempts.append(retry_state.attempt_number)

        @retry(connect_retry_config, before_sleep=record)
        def flaky() -> Literal["connected"]:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionError("reset by peer")
            return "connected"

        assert flaky() == "connected"
        assert attempts == [1, 2]

    def test_default_hook_logs_and_retries(self, connect_retry_config: RetryConfig) -> None:
        """Verify the default logging hook does not interfere with retrying."""
        call_count = 0

        @retry(connect_retry_config, before_sleep=log_retry_attempt)
        def flaky() -> int:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ConnectionError("reset by peer")
            return call_count

        assert flaky() == 2
