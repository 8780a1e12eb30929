"""Family graph records, snapshots and batch change records.

Members and families are pydantic models persisted by the GraphStore. A
GraphSnapshot is the read-only view of one family that the resolver and the
merge engine work on; change records describe writes submitted as one batch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from uuid_utils import uuid7 as _uuid7

from ..transliteration import transliterate_to_latin


def new_id() -> str:
    """Generate a time-ordered UUID7 identifier."""
    return str(_uuid7())


class Gender(str, Enum):
    """Gender of a member; decides parent and spouse slots."""
    MALE = "MALE"
    FEMALE = "FEMALE"


# Fields copied from the invitee onto the target member when families unite
PROFILE_FIELDS: tuple[str, ...] = (
    "first_name",
    "middle_name",
    "last_name",
    "first_name_transliteration",
    "middle_name_transliteration",
    "last_name_transliteration",
    "avatar_image_url",
    "description",
    "birth_date",
    "birth_place",
    "death_date",
)

EDGE_FIELDS: tuple[str, ...] = ("father_id", "mother_id", "wife_id")

NAME_FIELDS: tuple[str, ...] = ("first_name", "middle_name", "last_name")


class Family(BaseModel):
    """A bounded genealogical graph."""

    id: str = Field(default_factory=new_id)
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Member(BaseModel):
    """A person record, possibly without any account login.

    ``wife_id`` is only ever set on a MALE member; the husband of a FEMALE
    member is found by reverse lookup.
    """

    id: str = Field(default_factory=new_id)
    family_id: str
    gender: Gender

    first_name: str
    middle_name: str | None = None
    last_name: str | None = None
    first_name_transliteration: str | None = None
    middle_name_transliteration: str | None = None
    last_name_transliteration: str | None = None

    avatar_image_url: str | None = None
    description: str | None = None
    birth_date: date | None = None
    birth_place: str | None = None
    death_date: date | None = None

    father_id: str | None = None
    mother_id: str | None = None
    wife_id: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_male(self) -> bool:
        return self.gender == Gender.MALE

    def with_transliterations(self) -> Member:
        """Return a copy whose transliteration fields match the names."""
        return self.model_copy(update=transliterate_names({
            name: getattr(self, name) for name in NAME_FIELDS
        }))


def transliterate_names(fields: dict[str, Any]) -> dict[str, Any]:
    """Add ``*_transliteration`` entries for every name present in ``fields``."""
    result = dict(fields)
    for name in NAME_FIELDS:
        if name in fields:
            result[f"{name}_transliteration"] = transliterate_to_latin(fields[name])
    return result


class FormerSpouse(BaseModel):
    """A historical spousal pairing, stored husband-keyed."""

    model_config = ConfigDict(frozen=True)

    husband_id: str
    wife_id: str

    def partner_of(self, member_id: str) -> str | None:
        if member_id == self.husband_id:
            return self.wife_id
        if member_id == self.wife_id:
            return self.husband_id
        return None


@dataclass(frozen=True)
class MemberNode:
    """Resolver view of a member: identity, gender and immediate neighbours."""
    id: str
    gender: Gender
    first_name: str
    father_id: str | None = None
    mother_id: str | None = None
    children_ids: tuple[str, ...] = ()
    husband_id: str | None = None
    wife_id: str | None = None


@dataclass
class GraphSnapshot:
    """Consistent read of one family with derived indexes.

    The children index and the reverse husband index are computed once on
    construction; the snapshot is never written back.
    """
    family_id: str
    members: dict[str, Member]
    former_spouses: tuple[FormerSpouse, ...] = ()

    _father_children: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)
    _mother_children: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)
    _husband_of: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for member in self.members.values():
            if member.father_id:
                self._father_children.setdefault(member.father_id, []).append(member.id)
            if member.mother_id:
                self._mother_children.setdefault(member.mother_id, []).append(member.id)
            if member.wife_id:
                self._husband_of[member.wife_id] = member.id

    def __contains__(self, member_id: object) -> bool:
        return member_id in self.members

    def __len__(self) -> int:
        return len(self.members)

    def get(self, member_id: str | None) -> Member | None:
        if member_id is None:
            return None
        return self.members.get(member_id)

    def father_children(self, member_id: str) -> list[str]:
        return list(self._father_children.get(member_id, ()))

    def mother_children(self, member_id: str) -> list[str]:
        return list(self._mother_children.get(member_id, ()))

    def children_of(self, member_id: str) -> list[str]:
        """Children ids, father-side first then mother-side."""
        return self.father_children(member_id) + self.mother_children(member_id)

    def husband_of(self, member_id: str) -> str | None:
        return self._husband_of.get(member_id)

    def spouse_of(self, member_id: str) -> str | None:
        member = self.members.get(member_id)
        if member is None:
            return None
        return member.wife_id if member.is_male else self.husband_of(member_id)

    def former_partners(self, member_id: str) -> list[str]:
        partners = (row.partner_of(member_id) for row in self.former_spouses)
        return [partner for partner in partners if partner is not None]

    def node(self, member_id: str) -> MemberNode | None:
        member = self.members.get(member_id)
        if member is None:
            return None
        return MemberNode(
            id=member.id,
            gender=member.gender,
            first_name=member.first_name,
            father_id=member.father_id,
            mother_id=member.mother_id,
            children_ids=tuple(self.children_of(member.id)),
            husband_id=self.husband_of(member.id),
            wife_id=member.wife_id,
        )

    def nodes(self) -> dict[str, MemberNode]:
        """Resolver input: every member reduced to a MemberNode."""
        return {member_id: self.node(member_id) for member_id in self.members}


# =============================================================================
# Batch change records
# =============================================================================


@dataclass(frozen=True)
class MemberUpdate:
    """Set fields on one member.

    Edge targets must live in one of ``family_ids``; when empty, the scope is
    the updated member's own family.
    """
    member_id: str
    fields: dict[str, Any]
    family_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class MemberDelete:
    """Detach every edge pointing at a member, then remove it."""
    member_id: str


@dataclass(frozen=True)
class FormerSpouseAdd:
    husband_id: str
    wife_id: str


@dataclass(frozen=True)
class FormerSpouseRemove:
    husband_id: str
    wife_id: str


@dataclass(frozen=True)
class FormerSpouseRekey:
    """Point every former-spouse row of ``old_id`` at ``new_id``.

    ``side`` selects the column: MALE re-keys husbands, FEMALE re-keys wives.
    """
    old_id: str
    new_id: str
    side: Gender


@dataclass(frozen=True)
class FamilyReassign:
    """Move every member of one family into another."""
    from_family_id: str
    to_family_id: str


EdgeChange = Union[
    MemberUpdate,
    MemberDelete,
    FormerSpouseAdd,
    FormerSpouseRemove,
    FormerSpouseRekey,
    FamilyReassign,
]


# =============================================================================
# Member search
# =============================================================================

MAX_SEARCH_LIMIT = 10


class MemberQuery(BaseModel):
    """Search filters for members across families.

    Name filters match as substrings of the stored transliterations, so a
    Cyrillic query finds Latin-spelled names and vice versa. ``born_after``
    and ``died_before`` are inclusive bounds.
    """
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    gender: Gender | None = None
    born_after: date | None = None
    died_before: date | None = None
    family_id: str | None = None

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=MAX_SEARCH_LIMIT, ge=1)

    @property
    def page_size(self) -> int:
        return min(self.limit, MAX_SEARCH_LIMIT)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def name_filters(self) -> dict[str, str]:
        """Transliterated name filters keyed by their column."""
        filters = {}
        for name in NAME_FIELDS:
            value = getattr(self, name)
            if value:
                filters[f"{name}_transliteration"] = transliterate_to_latin(value)
        return filters


# =============================================================================
# Merge request / report
# =============================================================================


class MergeRequest(BaseModel):
    """Designation of the member pair that becomes one identity.

    The invitee side ("from") is folded into the invitation side ("to").
    """
    invitee_family_id: str | None = None
    invitee_member_id: str | None = None
    target_family_id: str
    target_member_id: str


@dataclass
class MergeConflict:
    """A destructive discard forced by an edge already present on the target."""
    slot: str  # "father", "mother", "wife" or "husband"
    discarded_member_id: str
    kept_member_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "slot": self.slot,
            "discarded_member_id": self.discarded_member_id,
            "kept_member_id": self.kept_member_id,
        }


@dataclass
class MergeReport:
    """Outcome of uniting two families."""
    from_member_id: str
    to_member_id: str
    from_family_id: str
    to_family_id: str
    carried_slots: list[str] = field(default_factory=list)
    conflicts: list[MergeConflict] = field(default_factory=list)
    reparented_children: list[str] = field(default_factory=list)
    moved_members: int = 0

    @property
    def discarded_member_ids(self) -> list[str]:
        return [conflict.discarded_member_id for conflict in self.conflicts]
