"""Application state shared by handlers: theme and reminder preferences."""

import logging
from dataclasses import dataclass, field

from homeworkbugger.db.models import ReminderPreferences, ReminderTime
from homeworkbugger.db.repository import Repository
from homeworkbugger.utils.constants import DEFAULT_THEME, THEME_PALETTES

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Loaded once at startup and passed to handlers through bot_data."""

    theme: str = DEFAULT_THEME
    preferences: ReminderPreferences = field(default_factory=ReminderPreferences)

    @classmethod
    async def load(cls, repo: Repository) -> "AppState":
        state = cls(
            theme=await repo.load_theme(),
            preferences=await repo.load_preferences(),
        )
        logger.info(
            f"Loaded state (theme: {state.theme}, reminders: "
            f"{'on' if state.preferences.enabled else 'off'})"
        )
        return state

    @property
    def palette(self) -> dict[str, str]:
        return THEME_PALETTES[self.theme]

    async def set_theme(self, repo: Repository, theme: str) -> None:
        if theme not in THEME_PALETTES:
            raise ValueError(f"Unknown theme: {theme}. Choose: {', '.join(THEME_PALETTES)}")
        self.theme = theme
        await repo.save_theme(theme)

    async def update_preferences(
        self,
        repo: Repository,
        enabled: bool | None = None,
        times: list[ReminderTime] | None = None,
        active_weekdays: list[bool] | None = None,
    ) -> ReminderPreferences:
        """Apply the given changes and persist the preferences."""
        if enabled is not None:
            self.preferences.enabled = enabled
        if times is not None:
            self.preferences.times = sorted(times, key=lambda t: (t.hour, t.minute))
        if active_weekdays is not None:
            if len(active_weekdays) != 7:
                raise ValueError("Weekday selection must cover all 7 days")
            self.preferences.active_weekdays = active_weekdays

        await repo.save_preferences(self.preferences)
        return self.preferences
