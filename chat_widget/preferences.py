"""
Preference store: provider name and API key, persisted in the local SQLite file.

Only two entries ever exist. Nothing is encrypted and nothing expires.
"""

from typing import Optional

from chat_widget.database import DBPreference, SessionLocal
from chat_widget.models import DEFAULT_PROVIDER, PROVIDER_NAMES, Preferences

PROVIDER_KEY = "ai_provider"
API_KEY_KEY = "ai_api_key"


class PreferenceStore:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def load(self) -> Optional[Preferences]:
        """Returns the saved preferences, or None if no API key has been saved."""
        db = self._session_factory()
        try:
            rows = {
                row.key: row.value
                for row in db.query(DBPreference).filter(DBPreference.key.in_((PROVIDER_KEY, API_KEY_KEY)))
            }
        finally:
            db.close()

        api_key = rows.get(API_KEY_KEY)
        if not api_key:
            return None
        provider = rows.get(PROVIDER_KEY)
        if provider not in PROVIDER_NAMES:
            provider = DEFAULT_PROVIDER
        return Preferences(provider=provider, api_key=api_key)

    def save(self, prefs: Preferences) -> bool:
        """
        Overwrites both entries. A blank or whitespace-only key is ignored
        (returns False) rather than treated as an error.
        """
        api_key = prefs.api_key.strip()
        if not api_key:
            return False

        db = self._session_factory()
        try:
            db.merge(DBPreference(key=API_KEY_KEY, value=api_key))
            db.merge(DBPreference(key=PROVIDER_KEY, value=prefs.provider))
            db.commit()
        finally:
            db.close()
        return True

    def clear(self):
        db = self._session_factory()
        try:
            db.query(DBPreference).filter(DBPreference.key.in_((PROVIDER_KEY, API_KEY_KEY))).delete(
                synchronize_session=False
            )
            db.commit()
        finally:
            db.close()
