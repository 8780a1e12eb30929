"""Graph storage for family members and their typed edges.

Provides the GraphStore contract and a SQLite implementation. The store owns
persistence and atomicity; it runs no genealogical algorithms.
"""
from __future__ import annotations

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from ..config import CONFIG
from ..exceptions import ForbiddenRelation, NotFound
from .models import (
    EDGE_FIELDS,
    PROFILE_FIELDS,
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
    MemberQuery,
    MemberUpdate,
    transliterate_names,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = structlog.get_logger(__name__)

MEMBER_COLUMNS: tuple[str, ...] = tuple(Member.model_fields)
UPDATABLE_COLUMNS = frozenset(MEMBER_COLUMNS) - {"id", "created_at"}


class GraphStore(ABC):
    """Abstract base class for family graph storage."""

    @abstractmethod
    def transaction(self):
        """Context manager making the enclosed reads and writes one atomic unit."""
        ...

    @abstractmethod
    def create_family(self, name: str) -> Family:
        """Create an empty family."""
        ...

    @abstractmethod
    def get_family(self, family_id: str) -> Family:
        """Get a family by ID; raises NotFound."""
        ...

    @abstractmethod
    def count_members(self, family_id: str) -> int:
        """Number of members in a family."""
        ...

    @abstractmethod
    def add_member(self, member: Member) -> Member:
        """Persist a new member."""
        ...

    @abstractmethod
    def get_member(self, member_id: str, family_id: str | None = None) -> Member:
        """Point lookup, optionally scoped to a family; raises NotFound."""
        ...

    @abstractmethod
    def update_profile(self, member_id: str, family_id: str, **fields: Any) -> Member:
        """Update non-edge profile fields of a member."""
        ...

    @abstractmethod
    def delete_member(self, member_id: str, family_id: str) -> None:
        """Detach every edge pointing at a member, then remove it."""
        ...

    @abstractmethod
    def search_members(self, query: MemberQuery) -> list[Member]:
        """One page of members matching the query filters."""
        ...

    @abstractmethod
    def former_spouses_of(self, member_id: str) -> list[FormerSpouse]:
        """Former-spouse rows on either side of a member."""
        ...

    @abstractmethod
    def load_graph(self, family_id: str) -> GraphSnapshot:
        """Read every member of a family with resolved edges."""
        ...

    @abstractmethod
    def apply_edge_change(self, member_id: str, patch: dict[str, str | None]) -> None:
        """Write edge fields (father_id, mother_id, wife_id) on one member.

        Edge targets must belong to the member's own family; raises NotFound.
        """
        ...

    @abstractmethod
    def apply_batch(self, changes: Iterable[EdgeChange]) -> None:
        """Apply change records atomically (all or nothing)."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""
        ...


def _to_sql(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SQLiteGraphStore(GraphStore):
    """SQLite-backed family graph storage.

    One connection is shared behind a re-entrant lock, which gives
    single-writer semantics: every mutation runs inside ``transaction()``, and
    nested transactions join the outermost one. Foreign keys are deferred to
    commit time so a batch may pass through intermediate states, but no
    dangling edge is ever committed.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        max_family_members: int | None = None,
    ) -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.max_family_members = max_family_members or CONFIG.max_family_members
        self._lock = threading.RLock()
        self._depth = 0

        # Autocommit mode; transactions are opened explicitly
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA busy_timeout=5000;")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS families (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                family_id TEXT NOT NULL
                    REFERENCES families(id) DEFERRABLE INITIALLY DEFERRED,
                gender TEXT NOT NULL CHECK (gender IN ('MALE', 'FEMALE')),
                first_name TEXT NOT NULL,
                middle_name TEXT,
                last_name TEXT,
                first_name_transliteration TEXT,
                middle_name_transliteration TEXT,
                last_name_transliteration TEXT,
                avatar_image_url TEXT,
                description TEXT,
                birth_date TEXT,
                birth_place TEXT,
                death_date TEXT,
                father_id TEXT REFERENCES members(id) DEFERRABLE INITIALLY DEFERRED,
                mother_id TEXT REFERENCES members(id) DEFERRABLE INITIALLY DEFERRED,
                wife_id TEXT REFERENCES members(id) DEFERRABLE INITIALLY DEFERRED,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_members_family ON members(family_id);
            CREATE INDEX IF NOT EXISTS idx_members_father ON members(father_id);
            CREATE INDEX IF NOT EXISTS idx_members_mother ON members(mother_id);
            -- A wife has at most one current husband
            CREATE UNIQUE INDEX IF NOT EXISTS idx_members_wife
                ON members(wife_id) WHERE wife_id IS NOT NULL;

            CREATE TABLE IF NOT EXISTS former_spouses (
                husband_id TEXT NOT NULL
                    REFERENCES members(id) DEFERRABLE INITIALLY DEFERRED,
                wife_id TEXT NOT NULL
                    REFERENCES members(id) DEFERRABLE INITIALLY DEFERRED,
                PRIMARY KEY (husband_id, wife_id)
            );

            CREATE INDEX IF NOT EXISTS idx_former_wife ON former_spouses(wife_id);
            """
        )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self._conn
            except BaseException:
                if outer:
                    self._conn.execute("ROLLBACK")
                raise
            else:
                if outer:
                    try:
                        self._conn.execute("COMMIT")
                    except sqlite3.Error:
                        self._conn.execute("ROLLBACK")
                        raise
            finally:
                self._depth -= 1

    # ------------------------------ Families ------------------------------

    def create_family(self, name: str) -> Family:
        family = Family(name=name)
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO families (id, name, created_at) VALUES (?, ?, ?)",
                (family.id, family.name, family.created_at.isoformat()),
            )
        logger.info("store.family_created", family_id=family.id)
        return family

    def get_family(self, family_id: str) -> Family:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM families WHERE id = ?", (family_id,)
            ).fetchone()
        if row is None:
            raise NotFound("Family not found", family_id=family_id)
        return Family.model_validate(dict(row))

    def count_members(self, family_id: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM members WHERE family_id = ?", (family_id,)
            ).fetchone()
        return row[0]

    # ------------------------------ Members -------------------------------

    def add_member(self, member: Member) -> Member:
        member = member.with_transliterations()
        with self.transaction() as conn:
            self.get_family(member.family_id)
            if self.count_members(member.family_id) >= self.max_family_members:
                raise ForbiddenRelation(
                    f"Family is limited to {self.max_family_members} members",
                    family_id=member.family_id,
                )
            for field_name in EDGE_FIELDS:
                target_id = getattr(member, field_name)
                if target_id is not None:
                    self.get_member(target_id, member.family_id)

            data = member.model_dump()
            placeholders = ", ".join("?" for _ in MEMBER_COLUMNS)
            conn.execute(
                f"INSERT INTO members ({', '.join(MEMBER_COLUMNS)}) VALUES ({placeholders})",
                tuple(_to_sql(data[column]) for column in MEMBER_COLUMNS),
            )
        logger.info("store.member_added", member_id=member.id, family_id=member.family_id)
        return member

    def get_member(self, member_id: str, family_id: str | None = None) -> Member:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM members WHERE id = ?", (member_id,)
            ).fetchone()
        if row is None or (family_id is not None and row["family_id"] != family_id):
            raise NotFound("Member not found", member_id=member_id, family_id=family_id)
        return Member.model_validate(dict(row))

    def update_profile(self, member_id: str, family_id: str, **fields: Any) -> Member:
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Not profile fields: {sorted(unknown)}")

        with self.transaction() as conn:
            self.get_member(member_id, family_id)
            self._update(conn, member_id, transliterate_names(fields))
            return self.get_member(member_id, family_id)

    def delete_member(self, member_id: str, family_id: str) -> None:
        with self.transaction() as conn:
            self.get_member(member_id, family_id)
            self._delete(conn, member_id)
        logger.info("store.member_deleted", member_id=member_id, family_id=family_id)

    def search_members(self, query: MemberQuery) -> list[Member]:
        """Search members by transliterated name, gender and life dates.

        Results are in insertion order; the page size is capped.
        """
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in query.name_filters().items():
            clauses.append(f"instr({column}, ?) > 0")
            params.append(value)
        if query.gender is not None:
            clauses.append("gender = ?")
            params.append(query.gender.value)
        if query.born_after is not None:
            clauses.append("birth_date >= ?")
            params.append(query.born_after.isoformat())
        if query.died_before is not None:
            clauses.append("death_date <= ?")
            params.append(query.died_before.isoformat())
        if query.family_id is not None:
            clauses.append("family_id = ?")
            params.append(query.family_id)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT * FROM members {where} ORDER BY rowid LIMIT ? OFFSET ?",
                (*params, query.page_size, query.offset),
            ).fetchall()
        return [Member.model_validate(dict(row)) for row in rows]

    def former_spouses_of(self, member_id: str) -> list[FormerSpouse]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT husband_id, wife_id FROM former_spouses
                WHERE husband_id = ? OR wife_id = ?
                ORDER BY rowid
                """,
                (member_id, member_id),
            ).fetchall()
        return [FormerSpouse(husband_id=row["husband_id"], wife_id=row["wife_id"]) for row in rows]

    # ------------------------------ Graph ---------------------------------

    def load_graph(self, family_id: str) -> GraphSnapshot:
        """Read every member of a family in two queries.

        Members come back in insertion order, which fixes the order of the
        children index and therefore the resolver's traversal order.
        """
        with self.transaction() as conn:
            self.get_family(family_id)
            member_rows = conn.execute(
                "SELECT * FROM members WHERE family_id = ? ORDER BY rowid",
                (family_id,),
            ).fetchall()
            former_rows = conn.execute(
                """
                SELECT husband_id, wife_id FROM former_spouses
                WHERE husband_id IN (SELECT id FROM members WHERE family_id = ?)
                   OR wife_id IN (SELECT id FROM members WHERE family_id = ?)
                ORDER BY rowid
                """,
                (family_id, family_id),
            ).fetchall()

        members = {row["id"]: Member.model_validate(dict(row)) for row in member_rows}
        former = tuple(
            FormerSpouse(husband_id=row["husband_id"], wife_id=row["wife_id"])
            for row in former_rows
        )
        return GraphSnapshot(family_id=family_id, members=members, former_spouses=former)

    def apply_edge_change(self, member_id: str, patch: dict[str, str | None]) -> None:
        unknown = set(patch) - set(EDGE_FIELDS)
        if unknown:
            raise ValueError(f"Not edge fields: {sorted(unknown)}")
        self.apply_batch([MemberUpdate(member_id=member_id, fields=dict(patch))])

    def apply_batch(self, changes: Iterable[EdgeChange]) -> None:
        changes = list(changes)
        with self.transaction() as conn:
            for change in changes:
                self._apply(conn, change)
        logger.debug("store.batch_applied", changes=len(changes))

    def close(self) -> None:
        """Close the database."""
        with self._lock:
            self._conn.close()

    # ------------------------------ Internals -----------------------------

    def _require(
        self,
        conn: sqlite3.Connection,
        member_id: str,
        family_ids: tuple[str, ...] = (),
    ) -> sqlite3.Row:
        """Fetch a member row; with ``family_ids``, it must belong to one of them."""
        row = conn.execute("SELECT * FROM members WHERE id = ?", (member_id,)).fetchone()
        if row is None or (family_ids and row["family_id"] not in family_ids):
            raise NotFound(
                "Member not found",
                member_id=member_id,
                family_id=family_ids[0] if family_ids else None,
            )
        return row

    def _apply(self, conn: sqlite3.Connection, change: EdgeChange) -> None:
        if isinstance(change, MemberUpdate):
            row = self._require(conn, change.member_id, change.family_ids)
            scope = change.family_ids or (row["family_id"],)
            for field_name in EDGE_FIELDS:
                target_id = change.fields.get(field_name)
                if target_id is not None:
                    self._require(conn, target_id, scope)
            self._update(conn, change.member_id, change.fields)

        elif isinstance(change, MemberDelete):
            self._require(conn, change.member_id)
            self._delete(conn, change.member_id)

        elif isinstance(change, FormerSpouseAdd):
            husband = self._require(conn, change.husband_id)
            self._require(conn, change.wife_id, (husband["family_id"],))
            conn.execute(
                "INSERT OR IGNORE INTO former_spouses (husband_id, wife_id) VALUES (?, ?)",
                (change.husband_id, change.wife_id),
            )

        elif isinstance(change, FormerSpouseRemove):
            cursor = conn.execute(
                "DELETE FROM former_spouses WHERE husband_id = ? AND wife_id = ?",
                (change.husband_id, change.wife_id),
            )
            if cursor.rowcount == 0:
                raise NotFound("Former spouse not found", member_id=change.husband_id)

        elif isinstance(change, FormerSpouseRekey):
            self._require(conn, change.new_id)
            column = "husband_id" if change.side == Gender.MALE else "wife_id"
            # Rows that would duplicate an existing pair are dropped
            conn.execute(
                f"UPDATE OR IGNORE former_spouses SET {column} = ? WHERE {column} = ?",
                (change.new_id, change.old_id),
            )
            conn.execute(f"DELETE FROM former_spouses WHERE {column} = ?", (change.old_id,))

        elif isinstance(change, FamilyReassign):
            self.get_family(change.from_family_id)
            self.get_family(change.to_family_id)
            conn.execute(
                "UPDATE members SET family_id = ? WHERE family_id = ?",
                (change.to_family_id, change.from_family_id),
            )

        else:
            raise TypeError(f"Unknown change record: {change!r}")

    def _update(self, conn: sqlite3.Connection, member_id: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown member fields: {sorted(unknown)}")

        assignments = ", ".join(f"{column} = ?" for column in fields)
        conn.execute(
            f"UPDATE members SET {assignments} WHERE id = ?",
            (*(_to_sql(value) for value in fields.values()), member_id),
        )

    def _delete(self, conn: sqlite3.Connection, member_id: str) -> None:
        conn.execute("UPDATE members SET father_id = NULL WHERE father_id = ?", (member_id,))
        conn.execute("UPDATE members SET mother_id = NULL WHERE mother_id = ?", (member_id,))
        conn.execute("UPDATE members SET wife_id = NULL WHERE wife_id = ?", (member_id,))
        conn.execute(
            "DELETE FROM former_spouses WHERE husband_id = ? OR wife_id = ?",
            (member_id, member_id),
        )
        conn.execute("DELETE FROM members WHERE id = ?", (member_id,))
