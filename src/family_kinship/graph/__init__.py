"""Family graph storage, mutation and merging.

Provides:
- Member / family records and read-only graph snapshots
- SQLite graph storage with atomic batches
- Validated parent and spouse edge mutations
- Family union through a designated member pair
"""
from .graph_store import GraphStore, SQLiteGraphStore
from .merge import FamilyMergeEngine
from .models import (
    EdgeChange,
    Family,
    FamilyReassign,
    FormerSpouse,
    FormerSpouseAdd,
    FormerSpouseRekey,
    FormerSpouseRemove,
    Gender,
    GraphSnapshot,
    Member,
    MemberDelete,
    MemberNode,
    MemberQuery,
    MemberUpdate,
    MergeConflict,
    MergeReport,
    MergeRequest,
)
from .mutator import GraphMutator

__all__ = [
    # Storage
    "GraphStore",
    "SQLiteGraphStore",
    # Records
    "Family",
    "Member",
    "Gender",
    "FormerSpouse",
    "GraphSnapshot",
    "MemberNode",
    "MemberQuery",
    # Batch changes
    "EdgeChange",
    "MemberUpdate",
    "MemberDelete",
    "FormerSpouseAdd",
    "FormerSpouseRemove",
    "FormerSpouseRekey",
    "FamilyReassign",
    # Mutation and merge
    "GraphMutator",
    "FamilyMergeEngine",
    "MergeRequest",
    "MergeReport",
    "MergeConflict",
]
