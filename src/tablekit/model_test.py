"""
Tests for the default Model.

Run with: pytest src/tablekit/model_test.py -v
"""

import pytest

from tablekit.conftest import USERS_COLUMNS
from tablekit.fields import FieldTable
from tablekit.model import Model


@pytest.fixture
def fields():
    return FieldTable.from_rows(USERS_COLUMNS)


def test_initiate_fills_defaults(fields):
    user = Model().initiate(fields)

    assert user.to_dict() == {"id": 0, "name": "", "active": 1}


def test_initiate_keeps_existing_values(fields):
    user = Model({"name": "Ann"}).initiate(fields)

    assert user.to_dict() == {"name": "Ann", "id": 0, "active": 1}


def test_update_overwrites_and_coerces(fields):
    user = Model().initiate(fields).update({"id": "12", "active": "0", "extra": "kept"})

    assert user.id == 12
    assert user.active == 0
    assert user.name == ""
    assert user.extra == "kept"


def test_update_keeps_none(fields):
    user = Model().initiate(fields).update({"name": None})

    assert user.name is None


def test_attribute_and_item_access():
    user = Model({"id": 1})
    user.name = "Ann"
    user["team"] = "red"
    user.set("active", 1)

    assert user["name"] == "Ann"
    assert user.team == "red"
    assert user.get("active") == 1
    assert user.get("missing", "default") == "default"
    assert user.has("team")
    assert not user.has("missing")
    assert list(user) == ["id", "name", "team", "active"]


def test_missing_attribute_raises():
    with pytest.raises(AttributeError):
        Model().nothing_here
