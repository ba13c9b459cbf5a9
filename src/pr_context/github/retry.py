"""
Rate Limit Retry Policy

Decides whether a GitHub response is a rate-limit hit, how long to wait
before resubmitting, and how many resubmissions are allowed.
"""

import time
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import requests

from ..errors import RateLimitExceeded


logger = logging.getLogger(__name__)

PRIMARY = "primary"
SECONDARY = "secondary"


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for rate-limited and failed requests."""
    primary_retries: int = 2
    secondary_retries: int = 1
    max_wait_seconds: float = 60.0
    server_error_retries: int = 3
    backoff_factor: float = 1.0

    def __post_init__(self):
        if self.primary_retries < 0 or self.secondary_retries < 0 or self.server_error_retries < 0:
            raise ValueError("Retry counts must be non-negative")
        if self.max_wait_seconds <= 0:
            raise ValueError("max_wait_seconds must be positive")

    def budget(self, kind: str) -> int:
        return self.primary_retries if kind == PRIMARY else self.secondary_retries


def classify_rate_limit(response: requests.Response) -> Optional[str]:
    """
    Classify a response as a primary or secondary rate-limit hit.

    Args:
        response: Response returned by GitHub

    Returns:
        PRIMARY, SECONDARY or None when the response is not rate limited
    """
    if response.status_code == 429:
        return PRIMARY
    if response.status_code != 403:
        return None

    if response.headers.get('X-RateLimit-Remaining') == '0':
        return PRIMARY
    if 'Retry-After' in response.headers:
        return SECONDARY

    message = _error_message(response).lower()
    if 'secondary rate limit' in message or 'abuse' in message:
        return SECONDARY
    return None


def reset_time_from(response: requests.Response) -> datetime:
    """Reset timestamp announced by the response, or now when absent."""
    reset = response.headers.get('X-RateLimit-Reset')
    try:
        return datetime.fromtimestamp(int(reset))
    except (TypeError, ValueError):
        return datetime.now()


def wait_seconds(response: requests.Response, max_wait: float, now: Optional[float] = None) -> float:
    """
    Seconds to wait before resubmitting a rate-limited request.

    Retry-After wins over X-RateLimit-Reset. The result is clamped to
    [1, max_wait].
    """
    now = time.time() if now is None else now
    retry_after = response.headers.get('Retry-After')
    reset = response.headers.get('X-RateLimit-Reset')

    wait = 1.0
    try:
        if retry_after is not None:
            wait = float(retry_after)
        elif reset is not None:
            wait = float(reset) - now
    except ValueError:
        logger.debug(f"Unparseable rate limit headers: Retry-After={retry_after!r} Reset={reset!r}")

    return min(max(wait, 1.0), max_wait)


class RateLimitRetry:
    """
    Wraps a request callable and resubmits it on rate-limit responses.

    Non rate-limit responses, including 4xx client errors, are returned to
    the caller untouched so it can raise the matching error.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None, sleep: Callable[[float], None] = time.sleep):
        self.policy = policy or RetryPolicy()
        self.sleep = sleep

    def __call__(self, send: Callable[[], requests.Response], description: str = "request") -> requests.Response:
        attempts = {PRIMARY: 0, SECONDARY: 0}

        while True:
            response = send()
            kind = classify_rate_limit(response)
            if kind is None:
                return response

            if attempts[kind] >= self.policy.budget(kind):
                logger.error(f"{kind.capitalize()} rate limit budget exhausted for {description}")
                raise RateLimitExceeded(reset_time_from(response), status_code=response.status_code)

            attempts[kind] += 1
            wait = wait_seconds(response, self.policy.max_wait_seconds)
            logger.warning(
                f"{kind.capitalize()} rate limit hit for {description}. "
                f"Retry #{attempts[kind]} after {wait:.1f}s"
            )
            self.sleep(wait)


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or ''
    if isinstance(data, dict):
        return str(data.get('message', ''))
    return ''
