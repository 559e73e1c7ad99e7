import shutil
import unittest
from datetime import date
from pathlib import Path
from uuid import uuid4

from sbos_assistant.models import UserPreferences
from sbos_assistant.storage import ConversationStore, Database, PreferenceStore, RecordStore
from sbos_assistant.tool import ToolContext

PROJECT_ROOT = Path(__file__).resolve().parents[2]

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
TODAY = date(2025, 3, 14)


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"{self.__class__.__name__.lower()}-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        self._db = Database(str(self._tmp_dir / "assistant.db"))
        self._conversations = ConversationStore(self._db)
        self._records = RecordStore(self._db)
        self._preferences = PreferenceStore(
            self._db,
            UserPreferences(model="test-model", temperature=0.5, max_tokens=1024),
        )
        self._conversations.ensure_user(USER_ID)
        self._conversations.ensure_user(OTHER_USER_ID)
        self._context = ToolContext(user_id=USER_ID, today=TODAY)

    def tearDown(self) -> None:
        self._db.close()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)
