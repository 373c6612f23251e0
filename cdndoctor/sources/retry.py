"""Bounded retry with backoff for Config Source calls."""
from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from cdndoctor.config import Settings
from cdndoctor.context import CancelToken
from cdndoctor.errors import TransientSourceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    settings: Settings,
    label: str,
    cancel: CancelToken | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *fn*, retrying TransientSourceError up to settings.max_retries attempts.

    Any other exception propagates immediately. The last TransientSourceError is
    re-raised once attempts are exhausted.
    """
    attempts = max(settings.max_retries, 1)
    for attempt in range(attempts):
        if cancel is not None:
            cancel.raise_if_cancelled()
        try:
            return fn()
        except TransientSourceError as e:
            if attempt >= attempts - 1:
                logger.info("%s: giving up after %d attempts: %s", label, attempts, e)
                raise
            backoff = settings.backoff_for(attempt)
            logger.info(
                "%s: transient failure (attempt %d/%d): %s; retrying in %ss",
                label, attempt + 1, attempts, e, backoff,
            )
            if backoff:
                sleep(backoff)
    raise TransientSourceError(f"{label}: no attempts made")
