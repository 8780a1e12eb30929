"""Tests for name transliteration."""
from __future__ import annotations

from family_kinship.transliteration import detect_script, transliterate_to_latin


class TestDetectScript:
    """Tests for detect_script()."""

    def test_latin(self):
        assert detect_script("John") == "latin"

    def test_cyrillic(self):
        assert detect_script("Иван") == "cyrillic"

    def test_other(self):
        assert detect_script("1984") is None
        assert detect_script("") is None


class TestTransliterate:
    """Tests for transliterate_to_latin()."""

    def test_cyrillic_name(self):
        assert transliterate_to_latin("Иван") == "ivan"

    def test_multi_letter_mappings(self):
        assert transliterate_to_latin("Щукин") == "shchukin"
        assert transliterate_to_latin("Юлия") == "iuliia"

    def test_soft_sign_dropped(self):
        assert transliterate_to_latin("Игорь") == "igor"

    def test_latin_lowercased(self):
        assert transliterate_to_latin("John") == "john"

    def test_none_passthrough(self):
        assert transliterate_to_latin(None) is None
