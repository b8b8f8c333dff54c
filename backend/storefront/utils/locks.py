import os
from contextlib import contextmanager
from typing import Iterator

from filelock import FileLock, Timeout

from storefront.config import settings
from storefront.errors import ConflictError
from storefront.utils.log import get_logger

log = get_logger("storefront.locks")


@contextmanager
def owner_lock(owner_id: int) -> Iterator[None]:
    """
    Exclusive per-owner lock serializing cart mutations and checkout.
    Works across worker processes on the same host.
    """
    os.makedirs(settings.LOCK_DIR, exist_ok=True)
    lockfile = os.path.join(settings.LOCK_DIR, f"cart_{owner_id}.lock")
    lock = FileLock(lockfile)
    try:
        with lock.acquire(timeout=settings.LOCK_TIMEOUT_SECONDS):
            log.debug("acquired %s", lockfile)
            yield
    except Timeout:
        raise ConflictError("Cart is busy, try again")
