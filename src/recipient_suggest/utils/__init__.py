"""Shared helpers: provider-call retries and email address handling."""

import time
from functools import wraps
from typing import Any, Callable, TypeVar

import structlog

from recipient_suggest.utils.addresses import is_valid_email, normalize_email, split_address_list

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

__all__ = ["is_valid_email", "normalize_email", "retry_on_failure", "split_address_list"]


def retry_on_failure(
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    should_retry: Callable[[BaseException], bool] | None = None,
) -> Callable[[F], F]:
    """Retry a blocking provider call with exponential backoff.

    An exception is retried when it is an instance of ``retry_on`` and, if
    given, ``should_retry(exc)`` is true. Anything else propagates at once.

    Args:
        max_retries: Retries after the first attempt; 0 disables retrying.
        delay: Sleep before the first retry, in seconds.
        backoff: Multiplier applied to the sleep after each retry.
        retry_on: Exception types that may be transient.
        should_retry: Optional finer check, e.g. on an HTTP status.
    """

    def is_transient(exc: BaseException) -> bool:
        if not isinstance(exc, retry_on):
            return False
        return should_retry is None or should_retry(exc)

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            wait = delay
            while True:
                try:
                    return func(*args, **kwargs)
                except BaseException as exc:
                    if not is_transient(exc):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "provider_call_gave_up",
                            function=func.__name__,
                            attempts=attempt + 1,
                            error=str(exc),
                        )
                        raise
                    attempt += 1
                    logger.warning(
                        "provider_call_retrying",
                        function=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=wait,
                        error=str(exc),
                    )
                    time.sleep(wait)
                    wait *= backoff

        return wrapper  # type: ignore[return-value]

    return decorator
