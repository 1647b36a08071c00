import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from .engine import compute
from .errors import ValidationError
from .settings import COUNTER_TTS, COUNTERS, Settings


@dataclass
class UserRecord:
    message_count: int = 0
    tts_count: int = 0
    last_event_message: Optional[str] = None
    last_event_time: Optional[float] = None

    def counter(self, by: str) -> int:
        if by == COUNTER_TTS:
            return self.tts_count
        return self.message_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'messageCount': self.message_count,
            'ttsCount': self.tts_count,
            'lastMessage': self.last_event_message,
            'lastEventTime': self.last_event_time,
        }


def normalize(identifier: str) -> str:
    """Canonical registry key: trimmed and lowercased."""
    key = (identifier or '').strip().lower()
    if not key:
        raise ValidationError('user identifier is required')
    return key


class SessionRegistry:
    """Per-user activity counters for one broadcast session.

    Reads (``lookup``, ``top_n``, ``aggregate``) never insert; only the
    increment operations create records. Records returned to callers are
    copies taken under the lock.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._lock = threading.RLock()
        self._users: Dict[str, UserRecord] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._users)

    def lookup(self, identifier: str) -> Optional[UserRecord]:
        key = normalize(identifier)
        with self._lock:
            record = self._users.get(key)
            return replace(record) if record else None

    def get_or_create(self, identifier: str) -> UserRecord:
        key = normalize(identifier)
        with self._lock:
            return replace(self._get_or_create(key))

    def _get_or_create(self, key: str) -> UserRecord:
        record = self._users.get(key)
        if record is None:
            record = UserRecord()
            self._users[key] = record
        return record

    def increment_message(self, identifier: str) -> UserRecord:
        key = normalize(identifier)
        with self._lock:
            record = self._get_or_create(key)
            record.message_count += 1
            return replace(record)

    def increment_tts(self, identifier: str, payload: Optional[str] = None) -> UserRecord:
        key = normalize(identifier)
        with self._lock:
            record = self._get_or_create(key)
            record.tts_count += 1
            if payload is not None:
                record.last_event_message = payload
            record.last_event_time = self._clock()
            return replace(record)

    def reset_all(self) -> int:
        """Drop every record; returns how many users were cleared."""
        with self._lock:
            cleared = len(self._users)
            self._users.clear()
            return cleared

    def snapshot(self) -> List[Tuple[str, UserRecord]]:
        """Copies of all records in first-seen order."""
        with self._lock:
            return [(key, replace(record)) for key, record in self._users.items()]

    def top_n(self, n: int, by: str, settings: Settings) -> List[Tuple[str, UserRecord, float]]:
        """Users ranked by ``by`` descending, first-seen first on ties."""
        if by not in COUNTERS:
            raise ValidationError(f"by must be one of: {', '.join(COUNTERS)}")
        # sorted() is stable and the dict keeps insertion order
        ranked = sorted(self.snapshot(), key=lambda item: item[1].counter(by), reverse=True)
        return [
            (key, record, compute(record.counter(settings.counter), settings))
            for key, record in ranked[:max(0, n)]
        ]

    def aggregate(self) -> Dict[str, int]:
        with self._lock:
            records = list(self._users.values())
            return {
                'total_users': len(records),
                'total_messages': sum(r.message_count for r in records),
                'total_tts': sum(r.tts_count for r in records),
            }
