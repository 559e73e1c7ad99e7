from sbos_assistant.storage.conversations import ConversationStore, replayable
from sbos_assistant.storage.database import Database, utc_now
from sbos_assistant.storage.preferences import PreferenceStore
from sbos_assistant.storage.records import RecordKind, RecordStore

__all__ = [
    "ConversationStore",
    "Database",
    "PreferenceStore",
    "RecordKind",
    "RecordStore",
    "replayable",
    "utc_now",
]
