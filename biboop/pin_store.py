# biboop/pin_store.py
import threading
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_key(namespace: str, pin: str) -> str:
    return f"{namespace}:{pin}"


class Entry(BaseModel):
    timestamp: datetime
    pin: str
    result: Optional[Dict[str, Any]] = None

    @classmethod
    def fresh(cls, pin: str, result: Optional[Dict[str, Any]] = None) -> "Entry":
        return cls(timestamp=utcnow(), pin=pin, result=result)

    def age(self, now: Optional[datetime] = None) -> timedelta:
        return (now or utcnow()) - self.timestamp


class PinStore:
    """
    Namespaced in-memory map of handoff entries.

    Readers never lock: they dereference the currently published version,
    which is an immutable view and is never modified after publishing.
    Every mutation takes the single writer lock, builds the next version
    from a copy of the current one and swaps the reference in.

    Entries handed out are deep copies; the store keeps its own.
    """

    def __init__(self) -> None:
        self._entries: Mapping[str, Entry] = MappingProxyType({})
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    # ---------- lock-free reads ----------
    def exists(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Entry]:
        entry = self._entries.get(key)
        return entry.model_copy(deep=True) if entry is not None else None

    def snapshot(self) -> Tuple[Tuple[str, Entry], ...]:
        # published versions are immutable, so iterating one needs no lock
        return tuple(self._entries.items())

    # ---------- serialized writes ----------
    def _publish(self, entries: Dict[str, Entry]) -> None:
        self._entries = MappingProxyType(entries)

    def insert(self, key: str, entry: Entry) -> None:
        stored = entry.model_copy(deep=True)
        with self._write_lock:
            nxt = dict(self._entries)
            nxt[key] = stored
            self._publish(nxt)

    def update(self, key: str, entry: Entry) -> bool:
        """Replace a live entry. Returns False (and changes nothing) if the key is gone."""
        stored = entry.model_copy(deep=True)
        with self._write_lock:
            if key not in self._entries:
                return False
            nxt = dict(self._entries)
            nxt[key] = stored
            self._publish(nxt)
            return True

    def take_if_populated(self, key: str) -> Optional[Entry]:
        """
        Return a copy of the entry at `key`, or None if there is none.
        An entry carrying a result is removed in the same step, so each
        result is handed out at most once. Waiting entries are left in place.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.result is None:
            return entry.model_copy(deep=True)

        with self._write_lock:
            # re-read under the lock: a concurrent poller may have consumed it
            latest = self._entries.get(key)
            if latest is None:
                return None
            if latest.result is not None:
                nxt = dict(self._entries)
                del nxt[key]
                self._publish(nxt)
            return latest.model_copy(deep=True)

    def remove(self, key: str) -> bool:
        with self._write_lock:
            if key not in self._entries:
                return False
            nxt = dict(self._entries)
            del nxt[key]
            self._publish(nxt)
            return True

    def remove_many(self, keys: Iterable[str], stale_before: Optional[datetime] = None) -> List[str]:
        """
        Delete several keys with one publish and return the keys deleted.
        With `stale_before`, a key is only deleted if its current entry is
        still older than that instant, so entries refreshed after the caller
        looked at them survive.
        """
        with self._write_lock:
            nxt = dict(self._entries)
            removed: List[str] = []
            for key in keys:
                entry = nxt.get(key)
                if entry is None:
                    continue
                if stale_before is not None and entry.timestamp >= stale_before:
                    continue
                del nxt[key]
                removed.append(key)
            if removed:
                self._publish(nxt)
            return removed
