"""Validated parentage and spousal edge mutations.

Every operation runs inside one store transaction, so a read-then-write pair
(such as demoting the current spouse before adding a new one) cannot
interleave with a concurrent mutation of the same family.
"""
from __future__ import annotations

from datetime import date
from typing import Any

import structlog

from ..exceptions import InvalidRelation, NotFound
from .graph_store import GraphStore
from .models import (
    FormerSpouse,
    FormerSpouseAdd,
    FormerSpouseRemove,
    Gender,
    Member,
    MemberUpdate,
)

logger = structlog.get_logger(__name__)


class GraphMutator:
    """Edge mutations scoped to one family.

    Male and female sides are always derived from each member's gender,
    never from the direction of the request.

    Example:
        >>> mutator = GraphMutator(store, family_id)
        >>> mutator.add_parent(child_id, father_id)
        >>> mutator.add_spouse(father_id, mother_id)
    """

    def __init__(self, store: GraphStore, family_id: str) -> None:
        self.store = store
        self.family_id = family_id

    def _member(self, member_id: str) -> Member:
        return self.store.get_member(member_id, self.family_id)

    def _spouse_pair(self, member: Member) -> tuple[str, str] | None:
        """Return (husband_id, wife_id) of the member's current spouse edge."""
        if member.is_male:
            return (member.id, member.wife_id) if member.wife_id else None
        snapshot = self.store.load_graph(self.family_id)
        husband_id = snapshot.husband_of(member.id)
        return (husband_id, member.id) if husband_id else None

    def _ordered_pair(self, first: Member, second: Member) -> tuple[str, str]:
        """Order two members as (male_id, female_id)."""
        if first.gender == second.gender:
            raise InvalidRelation(
                "Spouses must be one MALE and one FEMALE member",
                member_id=first.id,
                family_id=self.family_id,
            )
        return (first.id, second.id) if first.is_male else (second.id, first.id)

    # ------------------------------ Members -------------------------------

    def create_member(
        self,
        first_name: str,
        gender: Gender,
        *,
        middle_name: str | None = None,
        last_name: str | None = None,
        birth_date: date | None = None,
        death_date: date | None = None,
        **profile: Any,
    ) -> Member:
        """Create a member attached to this family."""
        member = Member(
            family_id=self.family_id,
            gender=gender,
            first_name=first_name,
            middle_name=middle_name,
            last_name=last_name,
            birth_date=birth_date,
            death_date=death_date,
            **profile,
        )
        return self.store.add_member(member)

    def delete_member(self, member_id: str) -> None:
        """Delete a member after detaching every edge that points at it."""
        self.store.delete_member(member_id, self.family_id)

    # ------------------------------ Parents -------------------------------

    def add_parent(self, child_id: str, parent_id: str) -> None:
        """Set the father or mother slot, chosen by the parent's gender.

        Raises:
            InvalidRelation: the slot holds a different member, or child == parent
        """
        if child_id == parent_id:
            raise InvalidRelation(
                "A member cannot be their own parent", member_id=child_id, family_id=self.family_id
            )

        with self.store.transaction():
            child = self._member(child_id)
            parent = self._member(parent_id)
            slot = "father_id" if parent.is_male else "mother_id"
            current = getattr(child, slot)

            if current == parent_id:
                return
            if current is not None:
                raise InvalidRelation(
                    f"{slot.removesuffix('_id').capitalize()} is already set to another member",
                    member_id=child_id,
                    family_id=self.family_id,
                )
            self.store.apply_edge_change(child_id, {slot: parent_id})

        logger.info("mutator.parent_added", child_id=child_id, parent_id=parent_id, slot=slot)

    def delete_parent(self, child_id: str, parent_id: str) -> bool:
        """Clear the parent slot only if it currently holds ``parent_id``.

        Returns True when a slot was cleared.
        """
        with self.store.transaction():
            child = self._member(child_id)
            parent = self._member(parent_id)
            slot = "father_id" if parent.is_male else "mother_id"

            if getattr(child, slot) != parent_id:
                return False
            self.store.apply_edge_change(child_id, {slot: None})

        logger.info("mutator.parent_deleted", child_id=child_id, parent_id=parent_id, slot=slot)
        return True

    # ------------------------------ Spouses -------------------------------

    def make_spouse_as_former(self, member_id: str) -> FormerSpouse | None:
        """Demote the current spouse edge to a former-spouse row.

        Returns the recorded pair, or None when there is no current spouse.
        """
        with self.store.transaction():
            pair = self._spouse_pair(self._member(member_id))
            if pair is None:
                return None

            husband_id, wife_id = pair
            self.store.apply_batch([
                MemberUpdate(member_id=husband_id, fields={"wife_id": None}),
                FormerSpouseAdd(husband_id=husband_id, wife_id=wife_id),
            ])

        logger.info("mutator.spouse_demoted", husband_id=husband_id, wife_id=wife_id)
        return FormerSpouse(husband_id=husband_id, wife_id=wife_id)

    def add_spouse(self, member_id: str, candidate_id: str) -> None:
        """Make ``candidate_id`` the current spouse of ``member_id``.

        Any existing current spouse of either member is demoted to a former
        spouse first, so no member ever holds two current spouse edges.
        """
        if member_id == candidate_id:
            raise InvalidRelation(
                "Spouse cannot be the member themselves", member_id=member_id, family_id=self.family_id
            )

        with self.store.transaction():
            member = self._member(member_id)
            candidate = self._member(candidate_id)
            husband_id, wife_id = self._ordered_pair(member, candidate)

            if self._spouse_pair(member) == (husband_id, wife_id):
                return

            self.make_spouse_as_former(member_id)
            self.make_spouse_as_former(candidate_id)
            self.store.apply_edge_change(husband_id, {"wife_id": wife_id})

        logger.info("mutator.spouse_added", husband_id=husband_id, wife_id=wife_id)

    def delete_spouse(self, member_id: str) -> None:
        """Clear the current spouse edge, whichever side ``member_id`` is on."""
        with self.store.transaction():
            pair = self._spouse_pair(self._member(member_id))
            if pair is None:
                raise NotFound("Spouse not found", member_id=member_id, family_id=self.family_id)
            self.store.apply_edge_change(pair[0], {"wife_id": None})

        logger.info("mutator.spouse_deleted", husband_id=pair[0], wife_id=pair[1])

    def add_former_spouse(self, male_id: str, female_id: str) -> FormerSpouse:
        """Record a historical pairing without touching the current spouse edge."""
        with self.store.transaction():
            husband_id, wife_id = self._ordered_pair(self._member(male_id), self._member(female_id))
            self.store.apply_batch([FormerSpouseAdd(husband_id=husband_id, wife_id=wife_id)])

        return FormerSpouse(husband_id=husband_id, wife_id=wife_id)

    def delete_former_spouse(self, member_id: str, spouse_id: str) -> None:
        """Remove the exact former-spouse pair; raises NotFound if absent."""
        with self.store.transaction():
            husband_id, wife_id = self._ordered_pair(self._member(member_id), self._member(spouse_id))
            self.store.apply_batch([FormerSpouseRemove(husband_id=husband_id, wife_id=wife_id)])

        logger.info("mutator.former_spouse_deleted", husband_id=husband_id, wife_id=wife_id)

    def promote_former_spouse(self, member_id: str, former_partner_id: str) -> None:
        """Make a former spouse current again.

        The current spouse (if any) is demoted first; when the partner is not
        among the member's former spouses the whole operation rolls back.
        """
        with self.store.transaction():
            member = self._member(member_id)
            self.make_spouse_as_former(member_id)

            rows = self.store.former_spouses_of(member_id)
            row = next((r for r in rows if r.partner_of(member_id) == former_partner_id), None)
            if row is None:
                raise NotFound(
                    "Former spouse not found", member_id=former_partner_id, family_id=self.family_id
                )

            self.make_spouse_as_former(former_partner_id)
            self.store.apply_batch([
                FormerSpouseRemove(husband_id=row.husband_id, wife_id=row.wife_id),
                MemberUpdate(member_id=row.husband_id, fields={"wife_id": row.wife_id}),
            ])

        logger.info("mutator.former_spouse_promoted", member_id=member.id, spouse_id=former_partner_id)
