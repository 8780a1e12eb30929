"""Kinship path inference from a root member.

Assigns every member reachable from the root its shortest atomic step path
(father, son, half-sister, stepmother, ...), then composes and localizes each
path. Traversal is an explicit depth-first work-list over an arena of
MemberNode records addressed by id.
"""
from __future__ import annotations

from collections.abc import Mapping

import structlog

from ..graph.graph_store import GraphStore
from ..graph.models import Gender, GraphSnapshot, MemberNode
from .composer import IDENTITY
from .localizer import localize_paths

logger = structlog.get_logger(__name__)

Path = tuple[str, ...]


def _gendered(node: MemberNode | None, male: str, female: str) -> str:
    return male if node is not None and node.gender == Gender.MALE else female


def _expand(node: MemberNode, path: Path, nodes: Mapping[str, MemberNode]) -> list[tuple[str, Path]]:
    """Neighbours of ``node`` in fixed expansion order.

    Order: children, father, mother, full siblings, father-only half-siblings
    (each followed by their mother as stepmother), mother-only half-siblings
    (each followed by their father as stepfather), then husband else wife.
    Equal-length ties are won by whichever neighbour this order reaches first.
    """
    steps: list[tuple[str, Path]] = []

    for child_id in node.children_ids:
        steps.append((child_id, (*path, _gendered(nodes.get(child_id), "son", "daughter"))))

    father = nodes.get(node.father_id) if node.father_id else None
    mother = nodes.get(node.mother_id) if node.mother_id else None

    father_children: list[str] = []
    mother_children: list[str] = []
    if node.father_id:
        father_children = [c for c in father.children_ids if c != node.id] if father else []
        steps.append((node.father_id, (*path, "father")))
    if node.mother_id:
        mother_children = [c for c in mother.children_ids if c != node.id] if mother else []
        steps.append((node.mother_id, (*path, "mother")))

    only_father, only_mother = father_children, mother_children
    if node.father_id and node.mother_id:
        common = set(father_children) & set(mother_children)
        only_father = [c for c in father_children if c not in common]
        only_mother = [c for c in mother_children if c not in common]
        for sibling_id in father_children:
            if sibling_id in common:
                steps.append((sibling_id, (*path, _gendered(nodes.get(sibling_id), "brother", "sister"))))

    for sibling_id in only_father:
        sibling = nodes.get(sibling_id)
        steps.append((sibling_id, (*path, _gendered(sibling, "half-brother", "half-sister"))))
        if sibling is not None and sibling.mother_id:
            steps.append((sibling.mother_id, (*path, "stepmother")))

    for sibling_id in only_mother:
        sibling = nodes.get(sibling_id)
        steps.append((sibling_id, (*path, _gendered(sibling, "half-brother", "half-sister"))))
        if sibling is not None and sibling.father_id:
            steps.append((sibling.father_id, (*path, "stepfather")))

    if node.husband_id:
        steps.append((node.husband_id, (*path, "husband")))
    elif node.wife_id:
        steps.append((node.wife_id, (*path, "wife")))

    return steps


def resolve_paths(nodes: Mapping[str, MemberNode], root_id: str) -> dict[str, Path]:
    """Shortest atomic step path from ``root_id`` to every reachable member.

    A member's recorded path is replaced only by a strictly shorter one, and a
    replacement re-expands the member, so the final paths are minimal. The
    work-list is LIFO with neighbours pushed in reverse, which visits them in
    the same order a recursive depth-first walk would.

    An unknown root yields an empty mapping. The root always maps to
    ``("i",)``.
    """
    if root_id not in nodes:
        return {}

    best: dict[str, Path] = {}
    stack: list[tuple[str, Path]] = [(root_id, ())]

    while stack:
        member_id, path = stack.pop()
        node = nodes.get(member_id)
        if node is None:
            continue
        known = best.get(member_id)
        if known is not None and len(known) <= len(path):
            continue
        best[member_id] = path
        stack.extend(reversed(_expand(node, path, nodes)))

    best[root_id] = (IDENTITY,)
    return best


class KinshipResolver:
    """Answers "what is B to A?" for every member of a family.

    Example:
        >>> resolver = KinshipResolver(store)
        >>> relations = resolver.get_relations(family_id, my_member_id, lang="en")
        >>> relations[grandpa_id]
        'Grandfather'
    """

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    def resolve(self, snapshot: GraphSnapshot, root_id: str) -> dict[str, Path]:
        """Atomic step paths from ``root_id`` over an already loaded snapshot."""
        paths = resolve_paths(snapshot.nodes(), root_id)
        if not paths:
            logger.info("resolver.unknown_root", root_id=root_id, family_id=snapshot.family_id)
        return paths

    def get_relations(self, family_id: str, root_id: str, lang: str | None = None) -> dict[str, str]:
        """Localized relation of every reachable member to ``root_id``.

        Unsupported languages return the raw internal keys (``"|father"``).
        """
        snapshot = self.store.load_graph(family_id)
        return localize_paths(self.resolve(snapshot, root_id), lang)

    def get_relation(
        self, family_id: str, root_id: str, member_id: str, lang: str | None = None
    ) -> str | None:
        """Relation of a single member, or None when it is unreachable."""
        return self.get_relations(family_id, root_id, lang).get(member_id)
