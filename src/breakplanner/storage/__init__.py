"""Store, staging and notification capabilities."""

from breakplanner.storage.interfaces import (
    BreakStore,
    NotificationKind,
    Notifier,
    StagingStore,
)
from breakplanner.storage.json_staging import JsonFileStagingStore
from breakplanner.storage.memory import (
    CollectingNotifier,
    InMemoryBreakStore,
    InMemoryStagingStore,
    LoggingNotifier,
)
from breakplanner.storage.sql import SqlBreakStore

__all__ = [
    "BreakStore",
    "StagingStore",
    "Notifier",
    "NotificationKind",
    "InMemoryBreakStore",
    "InMemoryStagingStore",
    "CollectingNotifier",
    "LoggingNotifier",
    "JsonFileStagingStore",
    "SqlBreakStore",
]
