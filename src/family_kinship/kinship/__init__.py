"""Kinship inference: path resolution, composition and localization."""
from .composer import (
    IDENTITY,
    RELATION_SHORT_NAMES,
    TOO_DISTANT_ANCESTOR,
    TOO_DISTANT_DESCENDANT,
    Composition,
    CompositionKind,
    compose,
    count_generations,
)
from .localizer import (
    DEFAULT_LANGUAGE,
    RELATION_LANGS,
    SUPPORTED_LANGUAGES,
    localize,
    localize_paths,
    resolve_language,
)
from .resolver import KinshipResolver, resolve_paths

__all__ = [
    "IDENTITY",
    "RELATION_SHORT_NAMES",
    "TOO_DISTANT_ANCESTOR",
    "TOO_DISTANT_DESCENDANT",
    "Composition",
    "CompositionKind",
    "compose",
    "count_generations",
    "DEFAULT_LANGUAGE",
    "RELATION_LANGS",
    "SUPPORTED_LANGUAGES",
    "localize",
    "localize_paths",
    "resolve_language",
    "KinshipResolver",
    "resolve_paths",
]
