"""
Transaction helper with bounded retries on lock errors.

A retried call re-reads every row it depends on, so it sees whatever
a concurrent writer committed in the meantime.
"""

import logging
import random
import time

from django.conf import settings
from django.db import OperationalError, transaction

from .exceptions import translate_operational_error

logger = logging.getLogger(__name__)


def run_in_transaction(func, description, attempts=None, base_delay=None, max_delay=1.0):
    """
    Call ``func()`` inside ``transaction.atomic()`` and return its result.

    An OperationalError rolls the block back and the call is repeated
    with jittered exponential backoff, up to ``attempts`` times in total.
    Calls made inside an enclosing transaction get a single attempt.

    Args:
        func: Zero-argument callable doing the work
        description: Short text for log messages
        attempts: Total tries; defaults to ``ECOSWAP_DB_RETRY_ATTEMPTS``
        base_delay: First backoff in seconds; defaults to ``ECOSWAP_DB_RETRY_DELAY``
        max_delay: Upper bound for a single backoff

    Raises:
        OperationTimeout / Unavailable: Once the retries are used up
    """
    if attempts is None:
        attempts = getattr(settings, 'ECOSWAP_DB_RETRY_ATTEMPTS', 5)
    if base_delay is None:
        base_delay = getattr(settings, 'ECOSWAP_DB_RETRY_DELAY', 0.05)

    if transaction.get_connection().in_atomic_block:
        attempts = 1

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                return func()
        except OperationalError as e:
            if attempt >= attempts:
                logger.error(f"Database error during {description} after {attempt} attempt(s): {e}")
                raise translate_operational_error(e) from e

            delay = min(base_delay * 2 ** (attempt - 1), max_delay)
            delay += random.uniform(0, delay / 2)
            logger.warning(
                f"Database error during {description} (attempt {attempt}/{attempts}), "
                f"retrying in {delay:.2f}s: {e}"
            )
            time.sleep(delay)
