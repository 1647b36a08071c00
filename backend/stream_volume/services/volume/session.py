import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .engine import VolumeReading, describe
from .errors import ValidationError
from .registry import SessionRegistry, UserRecord, normalize
from .settings import COUNTER_MESSAGES, COUNTER_TTS, COUNTERS, Settings, SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_SIZE = 10
DEFAULT_LEADERBOARD_MAX = 100


@dataclass(frozen=True)
class ActivityResult:
    """Outcome of one recorded event.

    ``before`` is the reading for the counter prior to this event, ``after``
    includes it. Both come from the same settings snapshot.
    """
    username: str
    counter: str
    record: UserRecord
    before: VolumeReading
    after: VolumeReading

    @property
    def level_up(self) -> bool:
        return self.after.volume > self.before.volume


class StreamSession:
    """Service object owning the settings and counters of one broadcast.

    One instance lives on the Flask app; request and socket handlers fetch
    it from ``app.extensions`` instead of touching module-level state.
    """

    def __init__(
        self,
        settings: Optional[SettingsStore] = None,
        registry: Optional[SessionRegistry] = None,
        leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
        leaderboard_max: int = DEFAULT_LEADERBOARD_MAX,
        clock: Callable[[], float] = time.time,
    ):
        self.settings_store = settings if settings is not None else SettingsStore()
        self.registry = registry if registry is not None else SessionRegistry(clock=clock)
        self.leaderboard_size = leaderboard_size
        self.leaderboard_max = leaderboard_max
        self._clock = clock
        # guards the registry reset together with the session clock
        self._lock = threading.RLock()
        self.started_at = clock()
        self.session_started_at = self.started_at

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'StreamSession':
        return cls(
            settings=SettingsStore.from_config(config),
            leaderboard_size=int(config.get('LEADERBOARD_SIZE', DEFAULT_LEADERBOARD_SIZE)),
            leaderboard_max=int(config.get('LEADERBOARD_MAX', DEFAULT_LEADERBOARD_MAX)),
        )

    # ---- settings ----

    def settings(self) -> Settings:
        return self.settings_store.get()

    def update_settings(self, partial: Mapping[str, Any]) -> Tuple[Settings, List[str]]:
        return self.settings_store.apply(partial)

    # ---- per-user ----

    def peek(self, identifier: str) -> Tuple[str, Optional[UserRecord], VolumeReading]:
        """Current reading for a user without recording anything."""
        username = normalize(identifier)
        settings = self.settings_store.get()
        record = self.registry.lookup(username)
        counter = record.counter(settings.counter) if record else 0
        return username, record, describe(counter, settings)

    def record_message(self, identifier: str) -> ActivityResult:
        username = normalize(identifier)
        settings = self.settings_store.get()
        record = self.registry.increment_message(username)
        return self._result(username, COUNTER_MESSAGES, record, settings)

    def record_tts(self, identifier: str, message: Optional[str] = None) -> ActivityResult:
        username = normalize(identifier)
        settings = self.settings_store.get()
        record = self.registry.increment_tts(username, message)
        return self._result(username, COUNTER_TTS, record, settings)

    def _result(self, username: str, kind: str, record: UserRecord, settings: Settings) -> ActivityResult:
        counter = record.counter(settings.counter)
        # the event only moved the volume if it bumped the driving counter
        previous = counter - 1 if kind == settings.counter else counter
        return ActivityResult(
            username=username,
            counter=settings.counter,
            record=record,
            before=describe(previous, settings),
            after=describe(counter, settings),
        )

    # ---- session-wide ----

    def leaderboard(self, limit: Optional[int] = None, by: Optional[str] = None):
        settings = self.settings_store.get()
        if limit is None:
            limit = self.leaderboard_size
        limit = max(0, min(int(limit), self.leaderboard_max))
        by = by or settings.counter
        if by not in COUNTERS:
            raise ValidationError(f"by must be one of: {', '.join(COUNTERS)}")
        return self.registry.top_n(limit, by, settings)

    def uptime(self) -> float:
        return self._clock() - self.started_at

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            totals = self.registry.aggregate()
            session_started_at = self.session_started_at
        now = self._clock()
        return {
            'total_users': totals['total_users'],
            'total_messages': totals['total_messages'],
            'total_tts': totals['total_tts'],
            'uptime': int(now - self.started_at),
            'session_started_at': session_started_at,
            'session_uptime': int(now - session_started_at),
        }

    def reset(self) -> int:
        with self._lock:
            cleared = self.registry.reset_all()
            self.session_started_at = self._clock()
        logger.info('session reset, cleared %d users', cleared)
        return cleared
