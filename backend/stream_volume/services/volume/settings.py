import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ValidationError

logger = logging.getLogger(__name__)

MODE_STEPPED = 'stepped'
MODE_CONTINUOUS = 'continuous'
MODES = (MODE_STEPPED, MODE_CONTINUOUS)

COUNTER_MESSAGES = 'messages'
COUNTER_TTS = 'tts'
COUNTERS = (COUNTER_MESSAGES, COUNTER_TTS)


@dataclass(frozen=True)
class Settings:
    mode: str = MODE_STEPPED
    counter: str = COUNTER_MESSAGES
    start_volume: float = 0.5
    increment_per_event: float = 0.05
    max_volume: float = 1.0
    min_volume: float = 0.1
    events_per_increment: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'counter': self.counter,
            'startVolume': self.start_volume,
            'incrementPerEvent': self.increment_per_event,
            'maxVolume': self.max_volume,
            'minVolume': self.min_volume,
            'eventsPerIncrement': self.events_per_increment,
        }


# Public name -> (attribute, kind). The second group are names used by
# older overlay scripts; they map onto the same attributes.
_FIELDS: Dict[str, Tuple[str, str]] = {
    'mode': ('mode', 'mode'),
    'counter': ('counter', 'counter'),
    'startVolume': ('start_volume', 'volume'),
    'incrementPerEvent': ('increment_per_event', 'increment'),
    'maxVolume': ('max_volume', 'volume'),
    'minVolume': ('min_volume', 'volume'),
    'eventsPerIncrement': ('events_per_increment', 'granularity'),
    'baseVolume': ('start_volume', 'volume'),
    'volumeIncrement': ('increment_per_event', 'increment'),
    'messagesPerIncrement': ('events_per_increment', 'granularity'),
}

_ATTR_TO_PUBLIC = {
    'start_volume': 'startVolume',
    'increment_per_event': 'incrementPerEvent',
    'max_volume': 'maxVolume',
    'min_volume': 'minVolume',
    'events_per_increment': 'eventsPerIncrement',
}


def _to_number(name: str, value: Any) -> float:
    # bool is an int subclass; True/False are not volumes
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be a number')
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f'{name} must be a number') from None
    else:
        raise ValidationError(f'{name} must be a number')
    if not math.isfinite(number):
        raise ValidationError(f'{name} must be a finite number')
    return number


def _choice(name: str, value: Any, allowed: Tuple[str, ...]) -> str:
    normalized = value.strip().lower() if isinstance(value, str) else value
    if normalized not in allowed:
        raise ValidationError(f"{name} must be one of: {', '.join(allowed)}")
    return normalized


def clamp_field(name: str, kind: str, value: Any) -> Tuple[Any, bool]:
    """Coerce one settings value into its valid range.

    Returns ``(value, adjusted)`` where ``adjusted`` tells whether clamping
    changed the number that was supplied.
    """
    if kind == 'mode':
        return _choice(name, value, MODES), False
    if kind == 'counter':
        return _choice(name, value, COUNTERS), False

    number = _to_number(name, value)
    if kind == 'volume':
        clamped = max(0.0, min(1.0, number))
    elif kind == 'increment':
        clamped = max(0.0, number)
    elif kind == 'granularity':
        clamped = max(1, math.floor(number))
    else:
        raise ValueError(f'unknown settings field kind: {kind}')
    return clamped, clamped != number


class SettingsStore:
    """Holds the single settings snapshot shared by every request.

    Snapshots are immutable; an update builds a new one and swaps the
    reference under the lock, so readers always see a complete set.
    """

    def __init__(self, initial: Optional[Settings] = None):
        self._lock = threading.RLock()
        self._settings = initial or Settings()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'SettingsStore':
        """Build the initial snapshot from Flask config values.

        Config values go through the same clamping as runtime updates.
        """
        store = cls()
        partial = {
            'mode': config.get('VOLUME_MODE'),
            'counter': config.get('VOLUME_COUNTER'),
            'startVolume': config.get('BASE_VOLUME'),
            'incrementPerEvent': config.get('VOLUME_INCREMENT'),
            'maxVolume': config.get('MAX_VOLUME'),
            'minVolume': config.get('MIN_VOLUME'),
            'eventsPerIncrement': config.get('EVENTS_PER_INCREMENT'),
        }
        store.apply({k: v for k, v in partial.items() if v is not None})
        return store

    def get(self) -> Settings:
        return self._settings

    def update(self, partial: Mapping[str, Any]) -> Settings:
        settings, _ = self.apply(partial)
        return settings

    def apply(self, partial: Mapping[str, Any]) -> Tuple[Settings, List[str]]:
        """Apply a partial update and report which fields were clamped.

        Unknown keys are ignored. Out-of-range numbers are clamped rather
        than rejected; only malformed values raise ValidationError, in
        which case nothing is changed.
        """
        if not isinstance(partial, Mapping):
            raise ValidationError('settings payload must be a JSON object')

        changes: Dict[str, Any] = {}
        adjusted: List[str] = []
        for name, value in partial.items():
            field = _FIELDS.get(name)
            if field is None or value is None:
                continue
            attr, kind = field
            clamped, was_adjusted = clamp_field(name, kind, value)
            changes[attr] = clamped
            if was_adjusted:
                adjusted.append(_ATTR_TO_PUBLIC.get(attr, name))

        with self._lock:
            updated = replace(self._settings, **changes)
            if updated.min_volume > updated.start_volume:
                updated = replace(updated, min_volume=updated.start_volume)
                if 'minVolume' not in adjusted:
                    adjusted.append('minVolume')
            self._settings = updated

        if adjusted:
            logger.warning('settings clamped: %s', ', '.join(adjusted))
        return updated, adjusted
