"""Tests for SQLite graph storage."""
from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path

import pytest

from family_kinship.exceptions import NotFound
from family_kinship.graph import (
    FormerSpouseAdd,
    FormerSpouseRekey,
    FormerSpouseRemove,
    Gender,
    GraphMutator,
    Member,
    MemberDelete,
    MemberQuery,
    MemberUpdate,
    SQLiteGraphStore,
)


def make_member(family_id: str, name: str, gender: Gender = Gender.MALE, **edges) -> Member:
    return Member(family_id=family_id, first_name=name, gender=gender, **edges)


class TestFamilies:
    """Tests for family records."""

    def test_create_and_get(self, store):
        family = store.create_family("Petrov")
        assert store.get_family(family.id).name == "Petrov"
        assert store.count_members(family.id) == 0

    def test_get_missing(self, store):
        with pytest.raises(NotFound):
            store.get_family("no-such-family")

    def test_persists_to_file(self, tmp_path: Path):
        """A file-backed store survives reopening."""
        db_path = tmp_path / "nested" / "family.db"
        store = SQLiteGraphStore(db_path)
        family = store.create_family("Petrov")
        store.add_member(make_member(family.id, "Ivan"))
        store.close()

        reopened = SQLiteGraphStore(db_path)
        assert reopened.get_family(family.id).name == "Petrov"
        assert reopened.count_members(family.id) == 1
        reopened.close()


class TestMembers:
    """Tests for member records."""

    def test_add_and_get(self, store, family):
        member = store.add_member(make_member(family.id, "Иван"))
        stored = store.get_member(member.id, family.id)
        assert stored.gender == Gender.MALE
        assert stored.first_name_transliteration == "ivan"

    def test_get_scoped_to_family(self, store, family):
        member = store.add_member(make_member(family.id, "Ivan"))
        other = store.create_family("Other")
        with pytest.raises(NotFound):
            store.get_member(member.id, other.id)

    def test_edge_target_must_exist(self, store, family):
        with pytest.raises(NotFound):
            store.add_member(make_member(family.id, "Ivan", father_id="no-such-member"))
        assert store.count_members(family.id) == 0

    def test_update_profile(self, store, family):
        member = store.add_member(make_member(family.id, "Ivan"))
        updated = store.update_profile(member.id, family.id, first_name="Юрий", birth_place="Tula")
        assert updated.first_name == "Юрий"
        assert updated.first_name_transliteration == "iurii"
        assert updated.birth_place == "Tula"

    def test_update_profile_rejects_edges(self, store, family):
        member = store.add_member(make_member(family.id, "Ivan"))
        with pytest.raises(ValueError):
            store.update_profile(member.id, family.id, father_id=member.id)

    def test_delete_detaches(self, store, family):
        father = store.add_member(make_member(family.id, "Ivan"))
        child = store.add_member(make_member(family.id, "Alexei", father_id=father.id))
        store.delete_member(father.id, family.id)
        assert store.get_member(child.id).father_id is None


class TestEdgeChanges:
    """Tests for edge writes and batches."""

    def test_apply_edge_change(self, store, family):
        husband = store.add_member(make_member(family.id, "Ivan"))
        wife = store.add_member(make_member(family.id, "Maria", Gender.FEMALE))
        store.apply_edge_change(husband.id, {"wife_id": wife.id})
        assert store.get_member(husband.id).wife_id == wife.id

    def test_apply_edge_change_rejects_profile_fields(self, store, family):
        member = store.add_member(make_member(family.id, "Ivan"))
        with pytest.raises(ValueError):
            store.apply_edge_change(member.id, {"first_name": "Boris"})

    def test_edge_target_in_other_family(self, store, family):
        """Edges never point outside the member's own family."""
        child = store.add_member(make_member(family.id, "Alexei"))
        other = store.create_family("Other")
        stranger = store.add_member(make_member(other.id, "Boris"))

        with pytest.raises(NotFound):
            store.apply_edge_change(child.id, {"father_id": stranger.id})
        assert store.get_member(child.id).father_id is None

    def test_batch_scope_spans_named_families(self, store, family):
        """A batch may link two families when it names both."""
        child = store.add_member(make_member(family.id, "Alexei"))
        other = store.create_family("Other")
        father = store.add_member(make_member(other.id, "Boris"))

        with pytest.raises(NotFound):
            store.apply_batch([
                MemberUpdate(member_id=child.id, fields={"father_id": father.id}, family_ids=(other.id,)),
            ])

        store.apply_batch([
            MemberUpdate(
                member_id=child.id,
                fields={"father_id": father.id},
                family_ids=(family.id, other.id),
            ),
        ])
        assert store.get_member(child.id).father_id == father.id

    def test_former_spouse_in_other_family(self, store, family):
        husband = store.add_member(make_member(family.id, "Ivan"))
        other = store.create_family("Other")
        wife = store.add_member(make_member(other.id, "Maria", Gender.FEMALE))

        with pytest.raises(NotFound):
            store.apply_batch([FormerSpouseAdd(husband_id=husband.id, wife_id=wife.id)])
        assert store.former_spouses_of(husband.id) == []

    def test_wife_has_one_current_husband(self, store, family):
        first = store.add_member(make_member(family.id, "Ivan"))
        second = store.add_member(make_member(family.id, "Boris"))
        wife = store.add_member(make_member(family.id, "Maria", Gender.FEMALE))
        store.apply_edge_change(first.id, {"wife_id": wife.id})
        with pytest.raises(sqlite3.IntegrityError):
            store.apply_edge_change(second.id, {"wife_id": wife.id})
        assert store.get_member(second.id).wife_id is None

    def test_batch_is_atomic(self, store, family):
        """One failing change rolls back the whole batch."""
        father = store.add_member(make_member(family.id, "Ivan"))
        child = store.add_member(make_member(family.id, "Alexei"))
        with pytest.raises(NotFound):
            store.apply_batch([
                MemberUpdate(member_id=child.id, fields={"father_id": father.id}),
                MemberDelete(member_id="no-such-member"),
            ])
        assert store.get_member(child.id).father_id is None

    def test_former_spouse_rows(self, store, family):
        husband = store.add_member(make_member(family.id, "Ivan"))
        wife = store.add_member(make_member(family.id, "Maria", Gender.FEMALE))
        replacement = store.add_member(make_member(family.id, "Pavel"))

        store.apply_batch([FormerSpouseAdd(husband_id=husband.id, wife_id=wife.id)])
        assert [r.partner_of(wife.id) for r in store.former_spouses_of(wife.id)] == [husband.id]

        store.apply_batch([FormerSpouseRekey(old_id=husband.id, new_id=replacement.id, side=Gender.MALE)])
        assert store.former_spouses_of(husband.id) == []
        assert [r.husband_id for r in store.former_spouses_of(wife.id)] == [replacement.id]

        store.apply_batch([FormerSpouseRemove(husband_id=replacement.id, wife_id=wife.id)])
        assert store.former_spouses_of(wife.id) == []

    def test_remove_missing_former_spouse(self, store, family):
        with pytest.raises(NotFound):
            store.apply_batch([FormerSpouseRemove(husband_id="a", wife_id="b")])

    def test_nested_transaction_rolls_back_with_outer(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                family = store.create_family("Doomed")
                raise RuntimeError("abort")
        with pytest.raises(NotFound):
            store.get_family(family.id)


class TestLoadGraph:
    """Tests for family snapshots."""

    def test_snapshot_indexes(self, store, family):
        father = store.add_member(make_member(family.id, "Ivan"))
        mother = store.add_member(make_member(family.id, "Maria", Gender.FEMALE))
        store.apply_edge_change(father.id, {"wife_id": mother.id})
        first = store.add_member(make_member(family.id, "Alexei", father_id=father.id, mother_id=mother.id))
        second = store.add_member(make_member(family.id, "Olga", Gender.FEMALE, father_id=father.id))

        snapshot = store.load_graph(family.id)

        assert len(snapshot) == 4
        assert first.id in snapshot
        assert snapshot.father_children(father.id) == [first.id, second.id]
        assert snapshot.mother_children(mother.id) == [first.id]
        assert snapshot.husband_of(mother.id) == father.id
        assert snapshot.spouse_of(father.id) == mother.id
        assert snapshot.spouse_of(mother.id) == father.id

        node = snapshot.node(mother.id)
        assert node.husband_id == father.id
        assert node.children_ids == (first.id,)

    def test_snapshot_includes_former_spouses(self, store, family):
        husband = store.add_member(make_member(family.id, "Ivan"))
        wife = store.add_member(make_member(family.id, "Maria", Gender.FEMALE))
        store.apply_batch([FormerSpouseAdd(husband_id=husband.id, wife_id=wife.id)])

        snapshot = store.load_graph(family.id)
        assert snapshot.former_partners(husband.id) == [wife.id]
        assert snapshot.former_partners(wife.id) == [husband.id]

    def test_missing_family(self, store):
        with pytest.raises(NotFound):
            store.load_graph("no-such-family")


class TestSearchMembers:
    """Tests for member search."""

    @pytest.fixture
    def people(self, store, family):
        other = store.create_family("Smith")
        return {
            "ivan": store.add_member(Member(
                family_id=family.id, first_name="Иван", last_name="Петров",
                gender=Gender.MALE, birth_date=date(1950, 1, 1), death_date=date(2010, 6, 1),
            )),
            "ivanna": store.add_member(Member(
                family_id=family.id, first_name="Ivanna", gender=Gender.FEMALE, birth_date=date(1975, 5, 5),
            )),
            "john": store.add_member(Member(
                family_id=other.id, first_name="John", last_name="Petrov", gender=Gender.MALE,
            )),
        }

    def test_latin_query_finds_cyrillic_name(self, store, people):
        found = store.search_members(MemberQuery(first_name="Ivan"))
        assert [m.id for m in found] == [people["ivan"].id, people["ivanna"].id]

    def test_cyrillic_query_finds_latin_name(self, store, people):
        found = store.search_members(MemberQuery(last_name="Петров"))
        assert [m.id for m in found] == [people["ivan"].id, people["john"].id]

    def test_substring_match(self, store, people):
        found = store.search_members(MemberQuery(first_name="ANNA"))
        assert [m.id for m in found] == [people["ivanna"].id]

    def test_gender_filter(self, store, people):
        found = store.search_members(MemberQuery(first_name="ivan", gender=Gender.FEMALE))
        assert [m.id for m in found] == [people["ivanna"].id]

    def test_date_bounds(self, store, people):
        """Members without a recorded date never match a date bound."""
        assert [m.id for m in store.search_members(MemberQuery(born_after=date(1960, 1, 1)))] == [
            people["ivanna"].id
        ]
        assert [m.id for m in store.search_members(MemberQuery(died_before=date(2010, 6, 1)))] == [
            people["ivan"].id
        ]

    def test_family_filter(self, store, family, people):
        found = store.search_members(MemberQuery(last_name="petrov", family_id=family.id))
        assert [m.id for m in found] == [people["ivan"].id]

    def test_no_match(self, store, people):
        assert store.search_members(MemberQuery(first_name="Olga")) == []

    def test_page_size_is_capped(self, store, family):
        for i in range(12):
            store.add_member(make_member(family.id, f"Pyotr{i}"))

        query = MemberQuery(first_name="pyotr", limit=50)
        assert query.page_size == 10
        assert len(store.search_members(query)) == 10

        second = store.search_members(MemberQuery(first_name="pyotr", limit=50, page=2))
        assert [m.first_name for m in second] == ["Pyotr10", "Pyotr11"]

    def test_small_pages(self, store, family):
        for i in range(3):
            store.add_member(make_member(family.id, f"Pyotr{i}"))
        page = store.search_members(MemberQuery(first_name="pyotr", limit=2, page=2))
        assert [m.first_name for m in page] == ["Pyotr2"]


class TestConcurrency:
    """Concurrent writers on one file-backed store."""

    def test_concurrent_add_spouse(self, tmp_path: Path):
        """Racing spouse changes leave exactly one current husband."""
        store = SQLiteGraphStore(tmp_path / "family.db")
        family = store.create_family("Ivanov")
        mutator = GraphMutator(store, family.id)
        wife = mutator.create_member("Maria", Gender.FEMALE)
        husbands = [mutator.create_member(f"Husband{i}", Gender.MALE) for i in range(8)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(mutator.add_spouse, h.id, wife.id) for h in husbands]
            for future in futures:
                future.result()

        current = [h.id for h in husbands if store.get_member(h.id).wife_id == wife.id]
        assert len(current) == 1
        former = store.former_spouses_of(wife.id)
        assert len(former) == 7
        assert current[0] not in {row.husband_id for row in former}
        store.close()
