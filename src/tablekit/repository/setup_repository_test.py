"""
Tests for SetupRepository.

Run with: pytest src/tablekit/repository/setup_repository_test.py -v
"""

import pytest

from tablekit.conftest import SETTINGS_COLUMNS, FakeDatabase
from tablekit.repository import SetupRepository


@pytest.fixture
def setup_repo(database):
    database.respond([
        {"setting": "theme", "value": "dark"},
        {"setting": "admins", "value": "[1, 7]"},
    ])
    repo = SetupRepository(database, autoload=True)
    repo.load_settings("setting")
    return repo


def test_bootstraps_missing_settings_table():
    database = FakeDatabase()
    database.columns["settings"] = SETTINGS_COLUMNS

    SetupRepository(database, autoload=False)

    assert database.created == ["settings"]
    assert database.executed[0].startswith("CREATE TABLE IF NOT EXISTS settings")


def test_custom_table_name():
    database = FakeDatabase()

    repo = SetupRepository(database, table="app_settings", autoload=False)

    assert repo.table == "app_settings"
    assert repo.primary_key == ("setting",)
    assert "app_settings" in database.created


def test_load_settings(database, setup_repo):
    assert database.statements[-1] == ("SELECT * FROM settings ORDER BY setting", {})
    assert setup_repo.get_settings() == {"theme": "dark", "admins": "[1, 7]"}
    assert setup_repo.get_setting("theme") == "dark"
    assert setup_repo.get_setting("missing") is None


def test_update_setting_is_in_memory(database, setup_repo):
    count = len(database.statements)

    setup_repo.update_setting("theme", "light")

    assert setup_repo.get_setting("theme") == "light"
    assert len(database.statements) == count


def test_set_setting_saves_every_setting(database, setup_repo):
    setup_repo.update_setting("language", "nl")
    database.statements.clear()
    database.respond(
        [{"setting": "theme", "value": "dark"}], [{"count": 1}],
        [{"setting": "admins", "value": "[1, 7]"}], [{"count": 1}],
        [], [{"count": 0}],
    )

    setup_repo.set_setting("theme", "light")

    assert database.kinds() == [
        "SELECT", "SELECT", "UPDATE",
        "SELECT", "SELECT", "UPDATE",
        "SELECT", "SELECT", "INSERT",
    ]
    assert database.statements[2] == (
        "UPDATE settings SET value = %(value)s WHERE setting = %(setting)s",
        {"value": "light", "setting": "theme"},
    )
    assert database.statements[-1] == (
        "INSERT INTO settings (setting, value) VALUES (%(setting)s, %(value)s)",
        {"setting": "language", "value": "nl"},
    )
    assert database.transactions == ["BEGIN", "COMMIT"]


@pytest.mark.parametrize("field,value,expected", [
    ("admins", 7, True),
    ("admins", 2, False),
    ("editors", 7, False),
])
def test_has_access(setup_repo, field, value, expected):
    assert setup_repo.has_access(field, value) is expected
