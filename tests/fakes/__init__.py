"""Exports for test fakes."""

from .auth import FakeAuthProvider
from .cache import InMemoryCacheStore
from .listener import RecordingListener
from .sleep import RecordingSleeper
from .transport import ScriptedTransport

__all__ = [
    "FakeAuthProvider",
    "InMemoryCacheStore",
    "RecordingListener",
    "RecordingSleeper",
    "ScriptedTransport",
]
