"""
Unit tests for message translation.
"""

import pytest

from ora2pg_admin import i18n
from ora2pg_admin.i18n import MESSAGES, get_language, set_language, supported_languages, t


class TestTranslate:
    def test_english(self):
        assert t("migration.type_failed", type="VIEW") == "VIEW migration failed"

    def test_chinese(self):
        set_language("zh")

        assert get_language() == "zh"
        assert t("status.completed") == "已完成"

    def test_unknown_key_returns_key(self):
        assert t("no.such.key") == "no.such.key"

    def test_missing_translation_falls_back_to_english(self, monkeypatch):
        monkeypatch.setitem(MESSAGES, "zh", {})
        set_language("zh")

        assert t("check.tool_missing") == "ora2pg not found"

    def test_unsupported_language(self):
        with pytest.raises(ValueError):
            set_language("fr")
        assert get_language() == "en"


class TestCatalogs:
    def test_supported_languages(self):
        assert supported_languages() == ["en", "zh"]

    def test_catalogs_have_same_keys(self):
        assert set(i18n.MESSAGES["zh"]) == set(i18n.MESSAGES["en"])
