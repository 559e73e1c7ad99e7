import unittest

from sbos_assistant.models import UserPreferences
from tests.storage.base import OTHER_USER_ID, USER_ID, StoreTestCase


class PreferenceStoreTests(StoreTestCase):
    def test_missing_preferences_fall_back_to_defaults(self) -> None:
        self.assertEqual(self._preferences.defaults, self._preferences.get(USER_ID))

    def test_save_and_get(self) -> None:
        prefs = UserPreferences(
            model="other-model",
            temperature=0.2,
            max_tokens=999,
            ai_instructions="Answer in bullet points.",
            ai_context={"user_name": "Sam", "goals": ["Ship v1"]},
        )
        self._preferences.save(USER_ID, prefs)

        self.assertEqual(prefs, self._preferences.get(USER_ID))
        self.assertEqual(self._preferences.defaults, self._preferences.get(OTHER_USER_ID))

    def test_update_changes_only_given_fields(self) -> None:
        self._preferences.update(USER_ID, ai_instructions="Be brief.")
        updated = self._preferences.update(USER_ID, temperature=0.9)

        self.assertEqual("Be brief.", updated.ai_instructions)
        self.assertEqual(0.9, updated.temperature)
        self.assertEqual("test-model", updated.model)


if __name__ == "__main__":
    unittest.main()
