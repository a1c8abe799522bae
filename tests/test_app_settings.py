"""
Application Settings Tests
"""

import pytest

from verisource.admin import (
    DEFAULT_SETTINGS,
    MAINTENANCE_MODE_KEY,
    AppSettingsStore,
    SettingValue,
)
from verisource.database import SettingCategory, SettingKind
from verisource.errors import ValidationError


@pytest.fixture
def store(db):
    store = AppSettingsStore(db)
    store.seed_defaults()
    return store


class TestSettingValue:

    @pytest.mark.parametrize("kind,value", [
        ("bool", True),
        ("number", 5),
        ("number", 0.75),
        ("string", "hello"),
    ])
    def test_valid(self, kind, value):
        assert SettingValue.parse(kind, value).value == value

    @pytest.mark.parametrize("kind,value", [
        ("bool", "true"),
        ("bool", 1),
        ("number", True),
        ("number", "5"),
        ("string", 5),
    ])
    def test_wrong_kind(self, kind, value):
        with pytest.raises(ValidationError):
            SettingValue.parse(kind, value)

    def test_unknown_kind(self):
        with pytest.raises(ValidationError, match="Unknown setting kind"):
            SettingValue.parse("json", {})


class TestAppSettingsStore:

    def test_seed_is_idempotent(self, store):
        assert store.seed_defaults() == 0
        assert len(store.list_settings()) == len(DEFAULT_SETTINGS)

    def test_defaults(self, store):
        assert store.get("daily_limit_free") == SettingValue(SettingKind.NUMBER, 5)
        assert store.get_bool(MAINTENANCE_MODE_KEY) is False
        assert store.get_bool("enable_ads") is True

    def test_get_bool_on_non_bool(self, store):
        assert store.get_bool("daily_limit_free", default=True) is True

    def test_update_keeps_kind(self, db, store):
        previous, new = store.set(MAINTENANCE_MODE_KEY, True)
        db.commit()

        assert previous.value is False
        assert new.value is True
        assert store.get_bool(MAINTENANCE_MODE_KEY) is True

    def test_update_rejects_wrong_value(self, store):
        with pytest.raises(ValidationError):
            store.set(MAINTENANCE_MODE_KEY, "yes")

    def test_update_rejects_kind_change(self, store):
        with pytest.raises(ValidationError, match="declared as bool"):
            store.set(MAINTENANCE_MODE_KEY, "on", kind="string")

    def test_create_requires_kind(self, store):
        with pytest.raises(ValidationError, match="must declare a kind"):
            store.set("banner_text", "Hello")

    def test_create(self, db, store):
        previous, new = store.set(
            "banner_text", "Hello", kind="string", category=SettingCategory.UI
        )
        db.commit()

        assert previous is None
        assert new.to_dict() == {"kind": "string", "value": "Hello"}
        assert store.get_row("banner_text").is_public is False

    def test_public_only(self, db, store):
        store.set("internal_flag", True, kind="bool")
        db.commit()

        public_keys = {row.setting_key for row in store.list_settings(public_only=True)}
        assert "internal_flag" not in public_keys
        assert MAINTENANCE_MODE_KEY in public_keys
