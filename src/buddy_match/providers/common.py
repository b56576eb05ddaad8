from __future__ import annotations

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential


def _on_retry(retry_state) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying completion in {wait:.1f}s (attempt {attempt})...")


def transient_retrying(exception_types: tuple[type[Exception], ...], max_attempts: int) -> AsyncRetrying:
    return AsyncRetrying(
        retry=retry_if_exception_type(exception_types),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        stop=stop_after_attempt(max(1, max_attempts)),
        before_sleep=_on_retry,
        reraise=True,
    )
