import json
from typing import Any

from tablekit.repository.repository import Repository


def settings_bootstrap(table: str) -> dict:
    """Bootstrap specification for a key/value settings table."""
    return {
        "table": (
            f"CREATE TABLE IF NOT EXISTS {table} ("
            "setting VARCHAR(100) NOT NULL PRIMARY KEY, "
            "value TEXT NOT NULL DEFAULT ''"
            ")"
        ),
        "indexes": [],
        "seed": [],
    }


class SetupRepository(Repository):
    """
    Repository for a key/value settings table (columns setting, value).

    Settings are read into a dict with load_settings(), changed in memory
    and written back with save_settings().
    """

    def __init__(self, database, table: str = "settings", bootstrap: Any = None, **kwargs):
        kwargs.setdefault("primary_key", ("setting",))
        kwargs.setdefault("identity_column", None)
        super().__init__(
            database,
            table,
            bootstrap=bootstrap if bootstrap is not None else settings_bootstrap(table),
            **kwargs,
        )
        self.settings: dict[str, str] = {}

    def load_settings(self, order_by: str = "") -> None:
        self.reset()
        self.load_all(order_by)
        self.settings = {obj["setting"]: obj["value"] for obj in self.collection.all()}

    def save_settings(self) -> None:
        """Insert or update every setting in one transaction."""
        with self.database.transaction():
            for setting, value in self.settings.items():
                self.reset()
                self.load_by_primary_key({"setting": setting})
                row = self.current() if self.valid() else self.new()
                row["setting"] = setting
                row["value"] = value
                self.save(row)

    def update_setting(self, setting: str, value: str) -> None:
        self.settings[setting] = value

    def get_setting(self, setting: str) -> str | None:
        return self.settings.get(setting)

    def set_setting(self, setting: str, value: str) -> None:
        """Change a setting and save all settings."""
        self.update_setting(setting, value)
        self.save_settings()

    def get_settings(self) -> dict[str, str]:
        return dict(self.settings)

    def has_access(self, field: str, value: int) -> bool:
        """Check whether value is in the JSON list stored under a setting."""
        raw = self.settings.get(field)
        if not raw:
            return False
        return value in json.loads(raw)
