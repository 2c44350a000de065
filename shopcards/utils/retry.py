"""Retry decorators for image transport."""

import logging

import requests
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    """Connection drops, timeouts and 5xx answers are worth another try."""
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code >= 500
    return False


def image_fetch_retry(max_attempts: int = 3):
    """Build the retry decorator used around HTTP image downloads."""
    return retry(
        retry=retry_if_exception(_is_transient),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        stop=stop_after_attempt(max(1, max_attempts)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
