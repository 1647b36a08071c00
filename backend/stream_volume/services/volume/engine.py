"""Pure volume formula.

Nothing here touches session state: every function takes an activity
counter and a settings snapshot and returns derived values, so callers
can evaluate the same counter under different settings.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .settings import MODE_STEPPED, Settings

# Volumes are rounded to this many places so 0.1 + 10 * 0.02 reports 0.3.
PRECISION = 6


@dataclass(frozen=True)
class VolumeReading:
    counter: int
    volume: float
    volume_percent: int
    remaining_to_max: Optional[int]
    events_until_next: int
    at_max: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'volume': self.volume,
            'volumePercent': self.volume_percent,
            'remainingToMax': self.remaining_to_max,
            'eventsUntilNext': self.events_until_next,
            'atMax': self.at_max,
        }


def _check_counter(counter: int) -> None:
    if counter < 0:
        raise ValueError(f'counter must be non-negative, got {counter}')


def _clamp(value: float, settings: Settings) -> float:
    # max_volume wins when the bounds cross
    return min(max(value, settings.min_volume), settings.max_volume)


def _steps(counter: int, settings: Settings) -> int:
    if settings.mode == MODE_STEPPED:
        return counter // settings.events_per_increment
    return counter


def compute(counter: int, settings: Settings) -> float:
    """Volume for ``counter`` events, clamped to [min_volume, max_volume]."""
    _check_counter(counter)
    raw = settings.start_volume + _steps(counter, settings) * settings.increment_per_event
    return round(_clamp(raw, settings), PRECISION)


def volume_percent(volume: float) -> int:
    return int(math.floor(volume * 100 + 0.5))


def at_max(volume: float, settings: Settings) -> bool:
    return volume >= settings.max_volume


def remaining_to_max(counter: int, settings: Settings) -> Optional[int]:
    """Events still needed before the volume reaches max_volume.

    Returns 0 once at max and None when max_volume can never be reached
    (a zero increment below the ceiling).
    """
    _check_counter(counter)
    if at_max(compute(counter, settings), settings):
        return 0
    if settings.increment_per_event <= 0:
        return None
    gap = settings.max_volume - settings.start_volume
    # round before ceiling so 0.8 / 0.02 does not become 41
    steps_needed = math.ceil(round(gap / settings.increment_per_event, PRECISION))
    if settings.mode == MODE_STEPPED:
        events_needed = steps_needed * settings.events_per_increment
    else:
        events_needed = steps_needed
    return max(0, events_needed - counter)


def events_until_next(counter: int, settings: Settings) -> int:
    """Events until the volume next changes; 0 if it never will."""
    _check_counter(counter)
    if settings.increment_per_event <= 0 or at_max(compute(counter, settings), settings):
        return 0
    if settings.mode == MODE_STEPPED:
        per = settings.events_per_increment
        return per - (counter % per)
    return 1


def describe(counter: int, settings: Settings) -> VolumeReading:
    volume = compute(counter, settings)
    return VolumeReading(
        counter=counter,
        volume=volume,
        volume_percent=volume_percent(volume),
        remaining_to_max=remaining_to_max(counter, settings),
        events_until_next=events_until_next(counter, settings),
        at_max=at_max(volume, settings),
    )
