from __future__ import annotations

from dataclasses import dataclass


@dataclass
class KinshipError(Exception):
    """Base error for graph mutations and merges.

    ``reason`` is the human readable message; ``member_id`` and ``family_id``
    identify the record that caused the failure when known.
    """

    reason: str
    member_id: str | None = None
    family_id: str | None = None

    def __str__(self) -> str:
        base = self.reason
        if self.member_id is not None:
            base += f" (member={self.member_id})"
        if self.family_id is not None:
            base += f" (family={self.family_id})"
        return base


@dataclass
class NotFound(KinshipError):
    """A referenced member, family or former-spouse pair does not exist in scope."""


@dataclass
class InvalidRelation(KinshipError):
    """A slot is occupied by a different member, or the request references itself."""


@dataclass
class ForbiddenRelation(KinshipError):
    """A structural precondition is unmet, e.g. the invitee has no family."""
