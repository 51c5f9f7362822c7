import json
import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError
from pydantic import model_validator

from streaks.storage import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "app_settings"


class MenuBarDisplayMode(str, Enum):
    GRID = "Grid"
    DAYS = "Days"
    HIDDEN = "Hidden"


# Earlier releases stored combined modes; map them to (mode, show_streak).
LEGACY_MENU_BAR_MODES: dict[str, tuple[MenuBarDisplayMode, bool]] = {
    "Streak Only": (MenuBarDisplayMode.HIDDEN, True),
    "Streak": (MenuBarDisplayMode.HIDDEN, True),
    "Grid Only": (MenuBarDisplayMode.GRID, False),
    "Both": (MenuBarDisplayMode.GRID, True),
}


class AppSettings(BaseModel):
    """User preferences; `username` is the key for contribution lookups."""

    username: str = ""
    menu_bar_mode: MenuBarDisplayMode = MenuBarDisplayMode.DAYS
    menu_bar_show_streak: bool = True
    menu_bar_days_count: int = Field(default=14, ge=1, le=366)
    menu_bar_days_mode_count: int = Field(default=5, ge=1, le=31)
    launch_at_login: bool = False

    @model_validator(mode="before")
    @classmethod
    def _migrate_menu_bar_mode(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        raw_mode = data.get("menu_bar_mode")
        if not isinstance(raw_mode, str) or isinstance(raw_mode, MenuBarDisplayMode):
            return data

        migrated = dict(data)
        if raw_mode in LEGACY_MENU_BAR_MODES:
            mode, show_streak = LEGACY_MENU_BAR_MODES[raw_mode]
            migrated["menu_bar_mode"] = mode
            migrated["menu_bar_show_streak"] = show_streak
        elif raw_mode not in {item.value for item in MenuBarDisplayMode}:
            migrated["menu_bar_mode"] = MenuBarDisplayMode.DAYS
            migrated["menu_bar_show_streak"] = True
        else:
            migrated.setdefault("menu_bar_show_streak", False)
        return migrated


class SettingsStore:
    """Loads and saves `AppSettings` without ever failing on stored data."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> AppSettings:
        raw_value = self._store.get(SETTINGS_KEY)
        if raw_value is None:
            return AppSettings()

        try:
            data = json.loads(raw_value)
        except ValueError:
            logger.warning("Stored settings are not valid JSON; using defaults")
            return AppSettings()

        if not isinstance(data, dict):
            logger.warning("Stored settings are not an object; using defaults")
            return AppSettings()

        try:
            return AppSettings.model_validate(data)
        except ValidationError as exc:
            invalid_fields = {
                error["loc"][0] for error in exc.errors() if error["loc"]
            }
            logger.warning(
                "Resetting invalid settings fields to defaults: %s",
                ", ".join(sorted(str(name) for name in invalid_fields)),
            )

        cleaned = {
            key: value for key, value in data.items() if key not in invalid_fields
        }
        try:
            return AppSettings.model_validate(cleaned)
        except ValidationError:
            return AppSettings()

    def save(self, settings: AppSettings) -> None:
        self._store.set(SETTINGS_KEY, settings.model_dump_json())
