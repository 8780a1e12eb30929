"""Display text for composite relations in the supported languages.

Unsupported languages degrade gracefully: callers receive the raw internal
keys (``"|father|father"``) instead of an error.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from ..config import CONFIG
from ..transliteration import detect_script
from .composer import IDENTITY, Composition, CompositionKind, compose

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "ru")
DEFAULT_LANGUAGE = "en"

SCRIPT_LANGUAGES = MappingProxyType({"latin": "en", "cyrillic": "ru"})


def _ordinal(number: int) -> str:
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


@dataclass(frozen=True)
class RelationLanguage:
    """Label table and templates for one language."""
    code: str
    labels: Mapping[str, str]
    unknown: str
    ancestor: Callable[[int], str]
    descendant: Callable[[int], str]

    def render(self, composition: Composition) -> str:
        if composition.kind == CompositionKind.DISTANT_ANCESTOR:
            return self.ancestor(composition.generation)
        if composition.kind == CompositionKind.DISTANT_DESCENDANT:
            return self.descendant(composition.generation)
        if composition.relation is None:
            return self.unknown
        return self.labels.get(composition.relation, self.unknown)


RELATION_LANG_EN = RelationLanguage(
    code="en",
    labels=MappingProxyType({
        IDENTITY: "I",

        "son": "Son",
        "daughter": "Daughter",
        "stepson": "Stepson",
        "stepdaughter": "Stepdaughter",
        "grandson": "Grandson",
        "granddaughter": "Granddaughter",

        "brother": "Brother",
        "sister": "Sister",
        "half-brother": "Half-brother",
        "half-sister": "Half-sister",

        "male cousin": "Male cousin",
        "female cousin": "Female cousin",
        "male second cousin": "Male second cousin",
        "female second cousin": "Female second cousin",

        "father": "Father",
        "mother": "Mother",
        "stepfather": "Stepfather/Nobody",
        "stepmother": "Stepmother/Nobody",

        "uncle": "Uncle",
        "aunt": "Aunt",
        "great-uncle": "Great-uncle",
        "great-aunt": "Great-aunt",

        "grandfather": "Grandfather",
        "grandmother": "Grandmother",

        "nephew": "Nephew",
        "niece": "Niece",

        "husband": "Husband",
        "husband's father": "Father-in-law",
        "husband's mother": "Mother-in-law",
        "husband's brother": "Brother-in-law",
        "husband's sister": "Sister-in-law",
        "husband's sister's husband": "Brother-in-law",
        "husband's brother's wife": "Sister-in-law",

        "wife": "Wife",
        "wife's father": "Father-in-law",
        "wife's mother": "Mother-in-law",
        "wife's brother": "Brother-in-law",
        "wife's sister": "Sister-in-law",
        "wife's sister's husband": "Brother-in-law",
        "wife's brother's wife": "Sister-in-law",
        "wife's sister's husband's sister's husband": "Distant in-law",
        "wife's brother's wife's sister's husband": "Distant in-law",

        "brother's wife": "Sister-in-law",
        "sister's husband": "Brother-in-law",
        "half-brother's wife": "Sister-in-law",
        "half-sister's husband": "Brother-in-law",

        "son-in-law": "Son-in-law",
        "daughter-in-law": "Daughter-in-law",
        "son-in-law's father": "In-law/Co-parents-in-law",
        "son-in-law's mother": "In-law/Co-parents-in-law",
        "daughter-in-law's father": "In-law/Co-parents-in-law",
        "daughter-in-law's mother": "In-law/Co-parents-in-law",
    }),
    unknown="Too distant relation",
    ancestor=lambda generation: f"Distant ancestor {_ordinal(generation)} generation",
    descendant=lambda generation: f"Distant descendant {_ordinal(generation)} generation",
)

RELATION_LANG_RU = RelationLanguage(
    code="ru",
    labels=MappingProxyType({
        IDENTITY: "Я",

        "son": "Сын",
        "daughter": "Дочь",
        "stepson": "Пасынок",
        "stepdaughter": "Падчерица",
        "grandson": "Внук",
        "granddaughter": "Внучка",

        "brother": "Брат",
        "sister": "Сестра",
        "half-brother": "Неполнородный брат",
        "half-sister": "Неполнородная сестра",

        "male cousin": "Двоюродный брат",
        "female cousin": "Двоюродная сестра",
        "male second cousin": "Троюродный брат",
        "female second cousin": "Троюродная сестра",

        "father": "Отец",
        "mother": "Мать",
        "stepfather": "Отчим/Никто",
        "stepmother": "Мачеха/Никто",

        "uncle": "Дядя",
        "aunt": "Тётя",
        "great-uncle": "Двоюродный дядя",
        "great-aunt": "Двоюродная тётя",

        "grandfather": "Дедушка",
        "grandmother": "Бабушка",

        "nephew": "Племянник",
        "niece": "Племянница",

        "husband": "Муж",
        "husband's father": "Свёкор",
        "husband's mother": "Свекровь",
        "husband's brother": "Деверь",
        "husband's sister": "Золовка",
        "husband's sister's husband": "Зять",
        "husband's brother's wife": "Сношеница",

        "wife": "Жена",
        "wife's father": "Тесть",
        "wife's mother": "Тёща",
        "wife's brother": "Шурин",
        "wife's sister": "Свояченица",
        "wife's sister's husband": "Свояк/Зять",
        "wife's brother's wife": "Невестка/Ятровь",
        "wife's sister's husband's sister's husband": "Свояк",
        "wife's brother's wife's sister's husband": "Свояк",

        "brother's wife": "Невестка",
        "sister's husband": "Зять",
        "half-brother's wife": "Невестка",
        "half-sister's husband": "Зять",

        "son-in-law": "Зять",
        "daughter-in-law": "Невестка/Сноха",
        "son-in-law's father": "Сват",
        "son-in-law's mother": "Сватья",
        "daughter-in-law's father": "Сват",
        "daughter-in-law's mother": "Сватья",
    }),
    unknown="Слишком далекий родственник",
    ancestor=lambda generation: f"Далекий предок/пращур в {generation}-ом поколении",
    descendant=lambda generation: f"Далекий потомок в {generation}-ом поколении",
)

RELATION_LANGS: Mapping[str, RelationLanguage] = MappingProxyType({
    "en": RELATION_LANG_EN,
    "ru": RELATION_LANG_RU,
})


def resolve_language(code: str | None) -> str | None:
    """Map a caller-supplied language code to a supported language.

    Empty codes give the default language. Codes that are not supported
    directly are matched by the script of their first letter; None means the
    language is not supported at all.
    """
    if not code:
        return CONFIG.default_language if CONFIG.default_language in RELATION_LANGS else DEFAULT_LANGUAGE
    code = code.strip().lower()
    if code in RELATION_LANGS:
        return code
    script = detect_script(code)
    return SCRIPT_LANGUAGES.get(script) if script else None


def localize(composition: Composition, lang: str | None = None) -> str:
    """Render one composition; unsupported languages return the raw key."""
    language = resolve_language(lang)
    if language is None:
        return composition.key
    return RELATION_LANGS[language].render(composition)


def localize_paths(paths: Mapping[str, Sequence[str]], lang: str | None = None) -> dict[str, str]:
    """Compose and render every path of a resolver result.

    For an unsupported language the raw internal keys are passed through
    untranslated.
    """
    language = resolve_language(lang)
    if language is None:
        return {member_id: "".join(f"|{step}" for step in path) for member_id, path in paths.items()}

    table = RELATION_LANGS[language]
    return {member_id: table.render(compose(path)) for member_id, path in paths.items()}
