"""Shared fixtures for family graph tests."""
from __future__ import annotations

import pytest
import structlog

from family_kinship.graph import Gender, GraphMutator, SQLiteGraphStore


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop any logging configuration a test installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def store():
    """In-memory graph store."""
    store = SQLiteGraphStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def family(store):
    return store.create_family("Ivanov")


@pytest.fixture
def mutator(store, family):
    return GraphMutator(store, family.id)


@pytest.fixture
def nuclear(mutator):
    """Grandparents, parents, two children, an uncle and a cousin.

    Insertion order fixes the children index order.
    """
    m = mutator
    people = {
        "grandpa": m.create_member("Pyotr", Gender.MALE),
        "grandma": m.create_member("Anna", Gender.FEMALE),
        "father": m.create_member("Ivan", Gender.MALE),
        "mother": m.create_member("Maria", Gender.FEMALE),
        "me": m.create_member("Alexei", Gender.MALE),
        "sister": m.create_member("Olga", Gender.FEMALE),
        "uncle": m.create_member("Boris", Gender.MALE),
        "cousin": m.create_member("Dmitri", Gender.MALE),
    }
    ids = {key: member.id for key, member in people.items()}

    m.add_spouse(ids["grandpa"], ids["grandma"])
    m.add_spouse(ids["father"], ids["mother"])
    for child in ("father", "uncle"):
        m.add_parent(ids[child], ids["grandpa"])
        m.add_parent(ids[child], ids["grandma"])
    for child in ("me", "sister"):
        m.add_parent(ids[child], ids["father"])
        m.add_parent(ids[child], ids["mother"])
    m.add_parent(ids["cousin"], ids["uncle"])
    return ids
