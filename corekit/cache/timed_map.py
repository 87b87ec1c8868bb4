"""
A map with time-limited keys.

**Conceptual**: TimedMap is a plain key-value store in which every entry may
carry its own time-to-live (TTL). When an entry's TTL elapses, a scheduled
expiry action removes it. Expiry is active, not lazy: nothing is swept on
read, so size and keys() always reflect only live entries.

**Lifecycle of an entry**:
  1. set() stores the value and, if a TTL applies, schedules one expiry action
     bound to that key.
  2. The entry ends either when its expiry action fires, or explicitly via
     delete()/clear().
  3. Any operation that invalidates an entry (re-set, delete, clear) cancels
     its pending expiry action first. Without this, an old timer could
     delete a newer value written under the same key.

**Timing**: A TTL is a lower bound on retention, not an exact deadline. The
scheduler fires each action no earlier than its delay, and clock drift or
scheduler load can delay it further.

**Threading**: With the default ThreadingScheduler, expiry actions run on
timer threads. The two internal dicts are only ever mutated together under
an RLock, and each expiry action only removes its key if it is still the
key's current action.
"""

import logging
import math
import threading
from functools import partial
from typing import Dict, Generic, List, NamedTuple, Optional, TypeVar

from corekit.config.settings import Settings, get_settings
from corekit.utils.scheduler import Cancellable, Scheduler, get_default_scheduler

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class _Expiry(NamedTuple):
    """Pending expiry for one key: identity token plus cancellation handle."""
    token: object
    handle: Cancellable


def _validate_ttl(name: str, ttl_ms: Optional[float]) -> None:
    # Written so that NaN fails too
    if ttl_ms is not None and not ttl_ms >= 0:
        raise ValueError(f"{name} must be a non-negative number, got: {ttl_ms}")


class TimedMap(Generic[K, V]):
    """
    Key-value store whose entries expire after a per-key time-to-live.

    **Usage**:
        cache = TimedMap(default_ttl_ms=60_000)
        cache.set("session", token)             # expires after 60s
        cache.set("nonce", n, ttl_ms=5_000)     # expires after 5s
        cache.get("session")                    # token, or None once expired

    Keys must be hashable; values can be anything. Absence is reported with a
    sentinel (None by default), never with an exception.

    Args:
        default_ttl_ms: TTL in milliseconds for set() calls that pass none.
                        None (or math.inf) means such entries never expire.
        scheduler: Timer facility used for expiry actions. Defaults to a
                   ThreadingScheduler; pass a ManualScheduler in tests or an
                   AsyncioScheduler inside an event loop.

    Raises:
        ValueError: If default_ttl_ms is negative or NaN.
    """

    def __init__(
        self,
        default_ttl_ms: Optional[float] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        _validate_ttl("default_ttl_ms", default_ttl_ms)
        self._default_ttl_ms = default_ttl_ms
        self._scheduler = scheduler if scheduler is not None else get_default_scheduler()
        self._values: Dict[K, V] = {}
        self._timers: Dict[K, _Expiry] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> "TimedMap":
        """
        Build a TimedMap using the configured default TTL.

        Args:
            settings: Settings to read from; defaults to get_settings().
            scheduler: Optional scheduler, as for the constructor.

        Returns:
            TimedMap with default_ttl_ms = settings.cache.default_ttl_ms.
        """
        if settings is None:
            settings = get_settings()
        return cls(default_ttl_ms=settings.cache.default_ttl_ms, scheduler=scheduler)

    @property
    def default_ttl_ms(self) -> Optional[float]:
        return self._default_ttl_ms

    def set(self, key: K, value: V, ttl_ms: Optional[float] = None) -> None:
        """
        Insert or overwrite `key`, restarting its TTL window.

        The effective TTL is `ttl_ms` if given, else the default TTL, else
        none. Any expiry already pending for `key` is cancelled first, so the
        new TTL (or the absence of one) fully governs the new value.

        Args:
            key: Hashable key.
            value: Value to store.
            ttl_ms: Per-call TTL in milliseconds. None falls back to the
                    default; math.inf means never expire.

        Raises:
            ValueError: If ttl_ms is negative or NaN.
            Any error raised by the scheduler propagates, and the previous
            value and expiry for `key` are left untouched.
        """
        _validate_ttl("ttl_ms", ttl_ms)
        effective_ttl_ms = ttl_ms if ttl_ms is not None else self._default_ttl_ms

        with self._lock:
            if effective_ttl_ms is None or math.isinf(effective_ttl_ms):
                self._cancel_expiry(key)
                self._values[key] = value
                return

            # Schedule before touching state so a failing scheduler leaves the entry as it was
            token = object()
            handle = self._scheduler.call_later(
                effective_ttl_ms, partial(self._expire, key, token)
            )
            self._cancel_expiry(key)
            self._values[key] = value
            self._timers[key] = _Expiry(token, handle)
            logger.debug("Scheduled expiry for %r in %sms", key, effective_ttl_ms)

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """
        Return the value for `key`, or `default` if it is absent or expired.
        """
        return self._values.get(key, default)

    def has(self, key: K) -> bool:
        """Return True if `key` is present and not yet expired."""
        return key in self._values

    def delete(self, key: K) -> bool:
        """
        Remove `key` and cancel its pending expiry.

        Returns:
            True if the key was present, False otherwise.
        """
        with self._lock:
            self._cancel_expiry(key)
            if key not in self._values:
                return False
            del self._values[key]
            return True

    def clear(self) -> None:
        """Remove every entry and cancel every pending expiry."""
        with self._lock:
            for expiry in self._timers.values():
                expiry.handle.cancel()
            cancelled = len(self._timers)
            self._timers.clear()
            self._values.clear()
        logger.debug("Cleared TimedMap, cancelled %d pending expiries", cancelled)

    def keys(self) -> List[K]:
        """Snapshot of the keys currently present."""
        with self._lock:
            return list(self._values)

    @property
    def size(self) -> int:
        """Number of entries currently present."""
        return len(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={len(self._values)}, "
            f"pending_expiries={len(self._timers)}, default_ttl_ms={self._default_ttl_ms})"
        )

    def _cancel_expiry(self, key: K) -> None:
        # Caller holds the lock
        expiry = self._timers.pop(key, None)
        if expiry is not None:
            expiry.handle.cancel()
            logger.debug("Cancelled pending expiry for %r", key)

    def _expire(self, key: K, token: object) -> None:
        with self._lock:
            expiry = self._timers.get(key)
            # A cancel can race a timer thread that has already started
            if expiry is None or expiry.token is not token:
                return
            del self._timers[key]
            self._values.pop(key, None)
        logger.debug("Expired %r", key)
