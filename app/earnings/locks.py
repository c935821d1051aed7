"""
Concurrency control for settlement and scheduled jobs.

Two mechanisms:

1. DistributedLock: Redis SET NX EX lock shared by every web and worker
   process. Guards the appreciation run (one instance at a time) and each
   settlement action on a payout request.

2. check_version: optimistic version check combined with
   select_for_update, for operator actions that carry the version they
   were shown.

Usage:
    from earnings.locks import DistributedLock, check_version

    with DistributedLock("appreciation:run", ttl=900, blocking=False):
        run_appreciation()

    with transaction.atomic():
        request = check_version(PayoutRequest, payout_id, expected_version=2)
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING, TypeVar

from django.db import models, transaction

from django_redis import get_redis_connection

from core.exceptions import NotFoundError
from earnings.exceptions import LockAcquisitionError, StaleRecordError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

T = TypeVar("T", bound=models.Model)

LOCK_KEY_PREFIX = "earnings:lock"

APPRECIATION_RUN_LOCK = "appreciation:run"


def lock_storage_key(name: str) -> str:
    """Redis key that backs the lock called name."""
    return f"{LOCK_KEY_PREFIX}:{name}"


def settlement_lock_key(payout_request_id) -> str:
    return f"payout_request:settle:{payout_request_id}"


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis lock with a TTL and an ownership token.

    A worker can only release or extend a lock whose token it still holds,
    so a settlement action that outlived its TTL never drops the lock of
    the worker that took over.

    Args:
        name: Lock name, e.g. settlement_lock_key(payout_id)
        ttl: Seconds until the lock expires on its own
        blocking: Wait up to timeout for the lock instead of failing fast
        timeout: Maximum wait in seconds when blocking

    Raises:
        LockAcquisitionError: From acquire() or __enter__. details carry
            the lock name and retry_after, the holder's remaining seconds.
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    EXTEND_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        name: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.name = name
        self.key = lock_storage_key(name)
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def _retry_after(self, redis: Redis) -> int:
        # -2 missing key, -1 no expiry
        remaining = redis.ttl(self.key)
        return remaining if remaining > 0 else self.ttl

    def acquire(self) -> bool:
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            deadline = time.monotonic() + self.timeout
            while time.monotonic() < deadline:
                if redis.set(self.key, token, nx=True, ex=self.ttl):
                    self._token = token
                    return True
                time.sleep(self.POLL_INTERVAL)

            raise LockAcquisitionError(
                f"Gave up waiting for '{self.name}' after {self.timeout}s",
                details={"lock": self.name, "retry_after": self._retry_after(redis)},
            )

        if not redis.set(self.key, token, nx=True, ex=self.ttl):
            raise LockAcquisitionError(
                f"'{self.name}' is already in progress elsewhere",
                details={"lock": self.name, "retry_after": self._retry_after(redis)},
            )
        self._token = token
        return True

    def release(self) -> bool:
        """Release the lock if we still own it. Safe to call twice."""
        if self._token is None:
            return False

        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    def extend(self, ttl: int | None = None) -> bool:
        """Reset the remaining TTL (to ttl or the original TTL) if still owned."""
        if self._token is None:
            return False

        result = self._get_redis().eval(
            self.EXTEND_SCRIPT, 1, self.key, self._token, ttl or self.ttl
        )
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


# =============================================================================
# Optimistic Locking
# =============================================================================


def check_version(
    model_class: type[T],
    pk: Any,
    expected_version: int,
) -> T:
    """
    Lock a row for update after confirming it is still at expected_version.

    Must be called inside the caller's transaction; the row lock lasts
    until that transaction ends.

    Raises:
        NotFoundError: If the row does not exist
        StaleRecordError: If the row exists at another version
    """
    with transaction.atomic():
        instance = (
            model_class.objects.select_for_update()
            .filter(pk=pk, version=expected_version)
            .first()
        )
        if instance is not None:
            return instance

        model_name = model_class.__name__
        current = model_class.objects.filter(pk=pk).values_list("version", flat=True).first()
        if current is None:
            raise NotFoundError(
                f"{model_name} {pk} not found",
                details={"pk": str(pk)},
            )

        raise StaleRecordError(
            f"{model_name} {pk} changed since it was read "
            f"(expected version {expected_version}, now {current})",
            details={
                "model": model_name,
                "pk": str(pk),
                "expected_version": expected_version,
                "current_version": current,
            },
        )


__all__ = [
    "APPRECIATION_RUN_LOCK",
    "DistributedLock",
    "check_version",
    "lock_storage_key",
    "settlement_lock_key",
]
