"""
Single-flight guard for periodic Celery tasks.

Beat fires the reconciler every minute whether or not the previous run has
finished. The guard takes a non-blocking Valkey lock named after the task; a
run that finds the lock taken returns a "skipped" result without doing any
work.
"""

import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Iterator
from collections.abc import Callable
from valkey import Valkey
from valkey.exceptions import LockError

from blueolive.config import settings

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "blueolive:lock:"

# Only reached when a worker dies while holding the lock
DEFAULT_LOCK_TIMEOUT_SECONDS = 15 * 60


def get_valkey_client() -> Valkey:
    use_auth = bool(settings.valkey_auth_token)
    return Valkey(
        host=settings.valkey_host,
        port=settings.valkey_port,
        db=settings.valkey_db,
        password=settings.valkey_auth_token or None,
        ssl=use_auth,
        decode_responses=False,
    )


def lock_key(lock_name: str) -> str:
    return f"{LOCK_KEY_PREFIX}{lock_name}"


def skipped_result(lock_name: str) -> dict[str, str]:
    return {
        "status": "skipped",
        "reason": "previous_task_still_running",
        "message": f"{lock_name} is still running from an earlier tick, skipped",
    }


@contextmanager
def acquire_task_lock(
    lock_name: str,
    timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS,
) -> Iterator[bool]:
    """
    Take ``lock_name`` if it is free, without waiting.

    Yields True when this run holds the lock and False when another run does.
    A held lock is released on exit, including when the body raises.
    """
    lock = get_valkey_client().lock(
        lock_key(lock_name),
        timeout=timeout,
        blocking_timeout=0,
    )

    held = lock.acquire(blocking=False)
    if not held:
        logger.info(f"{lock_name}: lock held by another run")
        yield False
        return

    logger.info(f"{lock_name}: lock acquired")
    try:
        yield True
    finally:
        try:
            lock.release()
        except LockError as e:
            # Expired under us; another run may own it now
            logger.warning(f"{lock_name}: lock release failed: {e}")
        else:
            logger.info(f"{lock_name}: lock released")


def with_task_lock(
    lock_name: str | None = None,
    timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS,
):
    """Run the decorated task only if no other run holds its lock."""

    def decorator(func: Callable) -> Callable:
        name = lock_name or func.__name__

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            with acquire_task_lock(name, timeout=timeout) as held:
                if not held:
                    return skipped_result(name)
                return func(*args, **kwargs)

        return wrapper

    return decorator
