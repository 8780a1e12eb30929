"""Name transliteration into Latin script.

Member names are stored together with a lower-case Latin transliteration so
that names typed in either script can be compared. Cyrillic follows the
Russian passport transliteration table.
"""
from __future__ import annotations

from types import MappingProxyType

CYRILLIC_LETTERS = "абвгдеёжзийклмнопрстуфхцчшщыъьэюя"
LATIN_LETTERS = "abcdefghijklmnopqrstuvwxyz"

CYRILLIC_TO_LATIN = MappingProxyType({
    "а": "a",
    "б": "b",
    "в": "v",
    "г": "g",
    "д": "d",
    "е": "e",
    "ё": "e",
    "ж": "zh",
    "з": "z",
    "и": "i",
    "й": "i",
    "к": "k",
    "л": "l",
    "м": "m",
    "н": "n",
    "о": "o",
    "п": "p",
    "р": "r",
    "с": "s",
    "т": "t",
    "у": "u",
    "ф": "f",
    "х": "kh",
    "ц": "ts",
    "ч": "ch",
    "ш": "sh",
    "щ": "shch",
    "ы": "y",
    "ъ": "ie",
    "ь": "",
    "э": "e",
    "ю": "iu",
    "я": "ia",
})


def detect_script(text: str) -> str | None:
    """Return ``"latin"`` or ``"cyrillic"`` from the first character of ``text``."""
    if not text:
        return None
    char = text[0].lower()
    if char in LATIN_LETTERS:
        return "latin"
    if char in CYRILLIC_LETTERS:
        return "cyrillic"
    return None


def transliterate_to_latin(text: str | None) -> str | None:
    """Lower-case Latin rendering of a name.

    Latin input is only lower-cased; characters outside the table pass through.
    Returns None for None input so optional name fields stay optional.
    """
    if text is None:
        return None
    text = text.lower()
    if detect_script(text) != "cyrillic":
        return text
    return "".join(CYRILLIC_TO_LATIN.get(char, char) for char in text)
