"""Relation composition: reduce an atomic step path to one composite label.

A path such as ``("father", "brother", "son")`` is folded left to right
through a fixed table of ordered pairs: father+brother -> uncle, then
uncle+son -> male cousin. The table is data; adding a composition is adding
an entry.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

IDENTITY = "i"

TOO_DISTANT_ANCESTOR = "?too distant ancestor"
TOO_DISTANT_DESCENDANT = "?too distant descendant"
TERMINAL_MARKERS = frozenset({TOO_DISTANT_ANCESTOR, TOO_DISTANT_DESCENDANT})

ATOMIC_STEPS: tuple[str, ...] = (
    "father",
    "mother",
    "son",
    "daughter",
    "husband",
    "wife",
    "brother",
    "sister",
    "half-brother",
    "half-sister",
    "stepmother",
    "stepfather",
)

ANCESTOR_STEPS = frozenset({"father", "mother", "uncle", "aunt"})
DESCENDANT_STEPS = frozenset({"son", "daughter", "nephew", "niece"})

# Two generations up or down is the last named tier; one more is "too distant"
RELATION_SHORT_NAMES: MappingProxyType[tuple[str, str], str] = MappingProxyType({
    ("father", "father"): "grandfather",
    ("mother", "father"): "grandfather",
    ("father", "mother"): "grandmother",
    ("mother", "mother"): "grandmother",
    ("grandfather", "father"): TOO_DISTANT_ANCESTOR,
    ("grandmother", "father"): TOO_DISTANT_ANCESTOR,
    ("grandfather", "mother"): TOO_DISTANT_ANCESTOR,
    ("grandmother", "mother"): TOO_DISTANT_ANCESTOR,

    ("son", "son"): "grandson",
    ("daughter", "son"): "grandson",
    ("son", "daughter"): "granddaughter",
    ("daughter", "daughter"): "granddaughter",
    ("grandson", "son"): TOO_DISTANT_DESCENDANT,
    ("granddaughter", "son"): TOO_DISTANT_DESCENDANT,
    ("grandson", "daughter"): TOO_DISTANT_DESCENDANT,
    ("granddaughter", "daughter"): TOO_DISTANT_DESCENDANT,

    ("grandfather", "son"): "uncle",
    ("grandmother", "son"): "uncle",
    ("grandfather", "daughter"): "aunt",
    ("grandmother", "daughter"): "aunt",
    ("father", "brother"): "uncle",
    ("mother", "brother"): "uncle",
    ("father", "sister"): "aunt",
    ("mother", "sister"): "aunt",
    ("father", "half-brother"): "uncle",
    ("mother", "half-brother"): "uncle",
    ("father", "half-sister"): "aunt",
    ("mother", "half-sister"): "aunt",

    ("male cousin", "father"): "uncle",
    ("female cousin", "father"): "uncle",
    ("male cousin", "mother"): "aunt",
    ("female cousin", "mother"): "aunt",
    ("aunt", "husband"): "uncle",
    ("uncle", "wife"): "aunt",

    ("uncle", "son"): "male cousin",
    ("aunt", "son"): "male cousin",
    ("uncle", "daughter"): "female cousin",
    ("aunt", "daughter"): "female cousin",

    ("father", "male cousin"): "great-uncle",
    ("mother", "male cousin"): "great-uncle",
    ("father", "female cousin"): "great-aunt",
    ("mother", "female cousin"): "great-aunt",

    ("great-uncle", "son"): "male second cousin",
    ("great-aunt", "son"): "male second cousin",
    ("great-uncle", "daughter"): "female second cousin",
    ("great-aunt", "daughter"): "female second cousin",

    ("brother", "son"): "nephew",
    ("sister", "son"): "nephew",
    ("brother", "daughter"): "niece",
    ("sister", "daughter"): "niece",

    ("mother", "husband"): "stepfather",
    ("father", "wife"): "stepmother",
    ("wife", "son"): "stepson",
    ("husband", "son"): "stepson",
    ("wife", "daughter"): "stepdaughter",
    ("husband", "daughter"): "stepdaughter",

    ("husband", "father"): "husband's father",
    ("husband", "mother"): "husband's mother",
    ("husband", "brother"): "husband's brother",
    ("husband", "sister"): "husband's sister",
    ("husband's sister", "husband"): "husband's sister's husband",
    ("husband's brother", "wife"): "husband's brother's wife",

    ("wife", "father"): "wife's father",
    ("wife", "mother"): "wife's mother",
    ("wife", "brother"): "wife's brother",
    ("wife", "sister"): "wife's sister",
    ("wife's sister", "husband"): "wife's sister's husband",
    ("wife's brother", "wife"): "wife's brother's wife",
    ("wife's sister's husband", "sister"): "wife's sister's husband's sister",
    ("wife's sister's husband's sister", "husband"): "wife's sister's husband's sister's husband",
    ("wife's brother's wife", "sister"): "wife's brother's wife's sister",
    ("wife's brother's wife's sister", "husband"): "wife's brother's wife's sister's husband",

    ("brother", "wife"): "brother's wife",
    ("sister", "husband"): "sister's husband",
    ("half-brother", "wife"): "half-brother's wife",
    ("half-sister", "husband"): "half-sister's husband",

    ("son", "wife"): "daughter-in-law",
    ("daughter", "husband"): "son-in-law",
    ("son-in-law", "father"): "son-in-law's father",
    ("son-in-law", "mother"): "son-in-law's mother",
    ("daughter-in-law", "father"): "daughter-in-law's father",
    ("daughter-in-law", "mother"): "daughter-in-law's mother",
})


class CompositionKind(str, Enum):
    """Outcome class of a composition."""
    RELATION = "relation"  # Reduced to one known token
    DISTANT_ANCESTOR = "distant_ancestor"
    DISTANT_DESCENDANT = "distant_descendant"
    UNKNOWN = "unknown"  # Could not be reduced


@dataclass(frozen=True)
class Composition:
    """Result of reducing one path."""
    kind: CompositionKind
    relation: str | None = None
    generation: int = 0
    path: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Raw internal key of the original path, e.g. ``"|father|father"``."""
        return "".join(f"|{step}" for step in self.path)

    @property
    def is_distant(self) -> bool:
        return self.kind in (CompositionKind.DISTANT_ANCESTOR, CompositionKind.DISTANT_DESCENDANT)


def count_generations(path: Sequence[str]) -> int:
    """Signed generation offset: +1 per ancestor step, -1 per descendant step."""
    return sum(
        1 if step in ANCESTOR_STEPS else -1 if step in DESCENDANT_STEPS else 0
        for step in path
    )


def compose(path: Sequence[str]) -> Composition:
    """Reduce an atomic step path to a composite relation.

    The first two tokens are replaced by their composite while the pair is in
    the table. Reduction stops at one token, at a terminal marker, or when the
    leading pair is unknown (an unknown relation).
    """
    path = tuple(path)
    tokens = list(path)

    if not tokens:
        return Composition(kind=CompositionKind.UNKNOWN, path=path)

    while len(tokens) > 1:
        composite = RELATION_SHORT_NAMES.get((tokens[0], tokens[1]))
        if composite is None:
            return Composition(kind=CompositionKind.UNKNOWN, path=path)
        if composite in TERMINAL_MARKERS:
            kind = (
                CompositionKind.DISTANT_ANCESTOR
                if composite == TOO_DISTANT_ANCESTOR
                else CompositionKind.DISTANT_DESCENDANT
            )
            return Composition(
                kind=kind,
                relation=composite,
                generation=abs(count_generations(path)),
                path=path,
            )
        tokens[:2] = [composite]

    return Composition(kind=CompositionKind.RELATION, relation=tokens[0], path=path)
