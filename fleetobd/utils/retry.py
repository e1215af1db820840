# fleetobd/utils/retry.py
"""
Bounded retry for transient storage failures (dropped connection, pool timeout).
Blocking: async callers run it through run_in_threadpool.
Backoff doubles on each attempt. After the last attempt the failure is raised
as TransientError so the API answers 503 + Retry-After.
"""

import time
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from fleetobd.config import settings
from fleetobd.errors import TransientError
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)

TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError)
_MAX_BACKOFF = 2.0


def run_with_retry(db: Session, operation, *args, **kwargs):
    """Call operation(db, *args, **kwargs), retrying transient DB errors."""
    attempts = settings.TRANSIENT_RETRY_ATTEMPTS
    backoff = settings.TRANSIENT_RETRY_BACKOFF_SECONDS
    for attempt in range(1, attempts + 1):
        try:
            return operation(db, *args, **kwargs)
        except TRANSIENT_ERRORS as e:
            db.rollback()
            if attempt == attempts:
                raise TransientError(f"Storage unavailable after {attempts} attempts") from e
            logger.warning(f"⏱  {operation.__name__} attempt {attempt}/{attempts} failed: {e}. Retry in {backoff}s")
            time.sleep(backoff)
            backoff = min(backoff * 2, _MAX_BACKOFF)

