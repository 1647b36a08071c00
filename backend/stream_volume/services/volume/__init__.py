"""Volume domain services: settings, per-user counters and the volume formula.

This package holds the in-memory session state and the pure formula that
HTTP routes and socket handlers call into, keeping transport concerns
separated from the counter/volume mechanics.
"""

from .engine import VolumeReading, compute, describe
from .errors import ValidationError
from .registry import SessionRegistry, UserRecord, normalize
from .session import ActivityResult, StreamSession
from .settings import Settings, SettingsStore

__all__ = [
    'ActivityResult',
    'SessionRegistry',
    'Settings',
    'SettingsStore',
    'StreamSession',
    'UserRecord',
    'ValidationError',
    'VolumeReading',
    'compute',
    'describe',
    'normalize',
]
