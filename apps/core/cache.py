"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Process-owned TTL cache with an injectable clock and a
             bounded capacity (least recently used entries are evicted).
-------------------------------------------------------------------------
"""
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple


class TTLCache:
    """
    Small in-process cache with per-entry expiry.

    The clock is injected so tests can advance time without sleeping.
    Instances are created by their owner and passed to the code that
    uses them; there is no module-level singleton.

    Attributes:
        ttl_seconds: Lifetime of an entry after it is set.
        max_entries: Capacity. Setting a new key on a full cache evicts
                     the least recently used entry.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 128,
        clock: Optional[Callable[[], float]] = None
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the cached value, or default when missing or expired.

        Args:
            key: Cache key.
            default: Value returned on a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        """Store value under key, evicting the oldest entry when full."""
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._purge_expired()
                while len(self._entries) >= self.max_entries:
                    self._entries.popitem(last=False)
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def get_or_set(self, key: str, factory: Callable[[], Any], force_refresh: bool = False) -> Tuple[Any, bool]:
        """
        Return (value, from_cache), computing and storing on a miss.

        Args:
            key: Cache key.
            factory: Zero-argument callable producing the value.
            force_refresh: Skip the lookup and recompute.
        """
        if not force_refresh:
            sentinel = object()
            cached = self.get(key, sentinel)
            if cached is not sentinel:
                return cached, True
        value = factory()
        self.set(key, value)
        return value, False

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
