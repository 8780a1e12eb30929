"""Family union: fold one family into another through a designated member pair.

When a member of family A accepts an invitation tied to a member slot in
family B, the invitee's record ("from") and the invited slot ("to") become one
identity living in B. Every write is computed from one snapshot of both
families and applied as a single atomic batch.
"""
from __future__ import annotations

import structlog

from ..exceptions import ForbiddenRelation, InvalidRelation, NotFound
from .graph_store import GraphStore
from .models import (
    PROFILE_FIELDS,
    EdgeChange,
    FamilyReassign,
    FormerSpouseRekey,
    GraphSnapshot,
    Member,
    MemberDelete,
    MemberUpdate,
    MergeConflict,
    MergeReport,
    MergeRequest,
)

logger = structlog.get_logger(__name__)


class FamilyMergeEngine:
    """Merges the invitee's family into the inviting family.

    Discard policy: when the target already has a parent or spouse in a slot,
    the invitee side's member in that slot is deleted rather than duplicated.
    Each discard is reported as a MergeConflict and logged.
    """

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    def unite(self, request: MergeRequest) -> MergeReport:
        """Apply the union described by ``request``.

        Raises:
            ForbiddenRelation: the invitee has no family, or the merged family
                would exceed the member cap
            NotFound: a family or designated member is absent
            InvalidRelation: both sides are the same family, or the designated
                members differ in gender
        """
        if not request.invitee_family_id:
            raise ForbiddenRelation("Invitee has no family to merge")
        if not request.invitee_member_id:
            raise NotFound("Invitee has no family member profile", family_id=request.invitee_family_id)
        if request.invitee_family_id == request.target_family_id:
            raise InvalidRelation("Invitee already belongs to this family", family_id=request.target_family_id)

        with self.store.transaction():
            source = self.store.load_graph(request.invitee_family_id)
            target = self.store.load_graph(request.target_family_id)

            from_member = source.get(request.invitee_member_id)
            to_member = target.get(request.target_member_id)
            if from_member is None:
                raise NotFound(
                    "Invitee family member not found",
                    member_id=request.invitee_member_id,
                    family_id=source.family_id,
                )
            if to_member is None:
                raise NotFound(
                    "Invite family member not found",
                    member_id=request.target_member_id,
                    family_id=target.family_id,
                )
            if from_member.gender != to_member.gender:
                raise InvalidRelation(
                    "Merged members must have the same gender", member_id=to_member.id
                )

            cap = getattr(self.store, "max_family_members", None)
            if cap is not None and len(source) - 1 + len(target) > cap:
                raise ForbiddenRelation(
                    f"Merged family would exceed {cap} members", family_id=target.family_id
                )

            changes, report = self.plan(source, target, from_member, to_member)
            self.store.apply_batch(changes)

        for conflict in report.conflicts:
            logger.warning("merge.conflict", **conflict.to_dict())
        logger.info(
            "merge.applied",
            from_family_id=report.from_family_id,
            to_family_id=report.to_family_id,
            moved_members=report.moved_members,
            conflicts=len(report.conflicts),
        )
        return report

    def plan(
        self,
        source: GraphSnapshot,
        target: GraphSnapshot,
        from_member: Member,
        to_member: Member,
    ) -> tuple[list[EdgeChange], MergeReport]:
        """Compute the change batch without writing anything.

        Order matters: updates that clear edges come before the updates that
        reuse them, and the invitee record is deleted last.
        """
        report = MergeReport(
            from_member_id=from_member.id,
            to_member_id=to_member.id,
            from_family_id=source.family_id,
            to_family_id=target.family_id,
        )
        # Edges may cross between the two families until they are reassigned
        scope = (source.family_id, target.family_id)
        changes: list[EdgeChange] = []
        discards: list[EdgeChange] = []
        to_update = {name: getattr(from_member, name) for name in PROFILE_FIELDS}

        def discard(slot: str, discarded_id: str, kept_id: str) -> None:
            discards.append(MemberDelete(member_id=discarded_id))
            report.conflicts.append(
                MergeConflict(slot=slot, discarded_member_id=discarded_id, kept_member_id=kept_id)
            )

        for slot in ("father", "mother"):
            from_parent = getattr(from_member, f"{slot}_id")
            to_parent = getattr(to_member, f"{slot}_id")
            if from_parent is None:
                continue
            if to_parent is not None:
                discard(slot, from_parent, to_parent)
            else:
                to_update[f"{slot}_id"] = from_parent
                report.carried_slots.append(slot)

        if from_member.wife_id:
            if to_member.wife_id:
                discard("wife", from_member.wife_id, to_member.wife_id)
            else:
                changes.append(MemberUpdate(member_id=from_member.id, fields={"wife_id": None}, family_ids=scope))
                to_update["wife_id"] = from_member.wife_id
                report.carried_slots.append("wife")

        changes.append(MemberUpdate(member_id=to_member.id, fields=to_update, family_ids=scope))

        if not from_member.is_male:
            from_husband = source.husband_of(from_member.id)
            if from_husband is not None:
                to_husband = target.husband_of(to_member.id)
                if to_husband is not None:
                    discard("husband", from_husband, to_husband)
                else:
                    changes.append(
                        MemberUpdate(member_id=from_husband, fields={"wife_id": to_member.id}, family_ids=scope)
                    )
                    report.carried_slots.append("husband")

        parent_slot = "father_id" if from_member.is_male else "mother_id"
        children = (
            source.father_children(from_member.id)
            if from_member.is_male
            else source.mother_children(from_member.id)
        )
        for child_id in children:
            changes.append(MemberUpdate(member_id=child_id, fields={parent_slot: to_member.id}, family_ids=scope))
            report.reparented_children.append(child_id)

        changes.append(FormerSpouseRekey(old_id=from_member.id, new_id=to_member.id, side=from_member.gender))
        changes.extend(discards)
        changes.append(FamilyReassign(from_family_id=source.family_id, to_family_id=target.family_id))
        changes.append(MemberDelete(member_id=from_member.id))

        report.moved_members = len(source) - 1 - len(discards)
        return changes, report
