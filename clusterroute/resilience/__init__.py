from __future__ import annotations

from .retry import Retry, RetryLogicError, log_retry_attempt, retry

__all__ = ["Retry", "RetryLogicError", "log_retry_attempt", "retry"]
