"""
User notification preferences.

Stored settings only hold what a user changed; reads merge them over the
built-in catalog. A settings row with catalog defaults is created the first
time a user's preferences are read.
"""

from typing import Any

from pydantic import ValidationError

from config.notification_catalog import DEFAULT_GLOBAL_SETTINGS, DEFAULT_PREFERENCES
from models.notification import GlobalSettings, Preference, QuietHours, UserPreferences
from notifications.errors import ConfigurationError
from notifications.stores import PreferenceStore

# Preference fields a user may override
OVERRIDABLE_FIELDS = ("enabled", "time", "frequency", "conditions")


def _default_settings_row() -> dict[str, Any]:
    return {
        "preferences": {},
        "global_enabled": DEFAULT_GLOBAL_SETTINGS["enabled"],
        "quiet_hours_start": DEFAULT_GLOBAL_SETTINGS["quiet_hours"]["start"],
        "quiet_hours_end": DEFAULT_GLOBAL_SETTINGS["quiet_hours"]["end"],
        "max_notifications_per_day": DEFAULT_GLOBAL_SETTINGS["max_per_day"],
        "priority_level": DEFAULT_GLOBAL_SETTINGS["priority_level"],
    }


def _global_settings_from_row(row: dict[str, Any]) -> GlobalSettings:
    defaults = _default_settings_row()

    def _value(key: str) -> Any:
        value = row.get(key)
        return defaults[key] if value is None else value

    return GlobalSettings(
        enabled=_value("global_enabled"),
        quiet_hours=QuietHours(
            start=_value("quiet_hours_start"), end=_value("quiet_hours_end")
        ),
        max_per_day=_value("max_notifications_per_day"),
        priority_level=_value("priority_level"),
    )


def _global_settings_to_row(settings: GlobalSettings) -> dict[str, Any]:
    return {
        "global_enabled": settings.enabled,
        "quiet_hours_start": settings.quiet_hours.start,
        "quiet_hours_end": settings.quiet_hours.end,
        "max_notifications_per_day": settings.max_per_day,
        "priority_level": settings.priority_level,
    }


class PreferenceService:
    """Reads and updates per-user preferences and global settings."""

    def __init__(
        self,
        store: PreferenceStore,
        catalog: list[dict[str, Any]] | None = None,
    ):
        self.store = store
        self._catalog = tuple(
            Preference(**entry) for entry in (catalog or DEFAULT_PREFERENCES)
        )

    def get_catalog(self) -> list[Preference]:
        """All notification types with their default settings."""
        return [pref.model_copy(deep=True) for pref in self._catalog]

    def get_catalog_by_category(self, category: str) -> list[Preference]:
        return [pref for pref in self.get_catalog() if pref.category == category]

    def is_known_type(self, notification_type: str) -> bool:
        return any(pref.id == notification_type for pref in self._catalog)

    def merge(self, user_id: str, row: dict[str, Any] | None) -> UserPreferences:
        """Overlay a stored settings row on the catalog defaults."""
        row = row or {}
        overrides: dict[str, dict[str, Any]] = row.get("preferences") or {}

        preferences = []
        for default in self._catalog:
            custom = {
                key: value
                for key, value in (overrides.get(default.id) or {}).items()
                if key in OVERRIDABLE_FIELDS and value is not None
            }
            try:
                preferences.append(Preference.model_validate({**default.model_dump(), **custom}))
            except ValidationError as e:
                # A bad stored override falls back to the default for that type only
                print(f"  ⚠️  Ignoring invalid {default.id} override for user {user_id}: {e.error_count()} error(s)")
                preferences.append(default.model_copy(deep=True))

        return UserPreferences(
            user_id=user_id,
            preferences=preferences,
            global_settings=_global_settings_from_row(row),
        )

    def get_user_preferences(self, user_id: str) -> UserPreferences:
        row = self.store.get(user_id)
        if row is None:
            row = self.store.upsert(user_id, _default_settings_row())
        return self.merge(user_id, row)

    def update_user_preferences(
        self,
        user_id: str,
        preferences: list[Preference] | None = None,
        global_settings: GlobalSettings | None = None,
    ) -> UserPreferences:
        """
        Persist a full set of preferences and/or global settings.

        Only fields a user may override are stored; everything else keeps
        coming from the catalog.
        """
        row = self.store.get(user_id) or _default_settings_row()
        update: dict[str, Any] = {}

        if preferences is not None:
            overrides = dict(row.get("preferences") or {})
            for pref in preferences:
                if not self.is_known_type(pref.id):
                    raise ConfigurationError(f"Preference {pref.id} not found")
                overrides[pref.id] = pref.model_dump(include=set(OVERRIDABLE_FIELDS))
            update["preferences"] = overrides

        if global_settings is not None:
            update.update(_global_settings_to_row(global_settings))

        saved = self.store.upsert(user_id, {**row, **update})
        return self.merge(user_id, saved)

    def update_preference(
        self, user_id: str, preference_id: str, **updates: Any
    ) -> UserPreferences:
        """Change selected fields of one preference."""
        current = self.get_user_preferences(user_id)
        preference = current.find(preference_id)
        if preference is None:
            raise ConfigurationError(f"Preference {preference_id} not found")

        unknown = set(updates) - set(OVERRIDABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        # Validate through the model so a bad time string is rejected
        updated = Preference(**{**preference.model_dump(), **updates})
        result = self.update_user_preferences(user_id, preferences=[updated])
        print(f"  ✓ Updated preference {preference_id} for user {user_id}")
        return result

    def toggle_preference(self, user_id: str, preference_id: str, enabled: bool) -> UserPreferences:
        return self.update_preference(user_id, preference_id, enabled=enabled)

    def set_quiet_hours(self, user_id: str, start: str, end: str) -> UserPreferences:
        current = self.get_user_preferences(user_id)
        settings = current.global_settings.model_copy(
            update={"quiet_hours": QuietHours(start=start, end=end)}
        )
        result = self.update_user_preferences(user_id, global_settings=settings)
        print(f"  ✓ Set quiet hours for user {user_id}: {start} - {end}")
        return result

    def reset_to_defaults(self, user_id: str) -> UserPreferences:
        saved = self.store.upsert(user_id, _default_settings_row())
        return self.merge(user_id, saved)
