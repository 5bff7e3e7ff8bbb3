"""Shared fixtures: a small five-generation family and a wider three-generation one."""

import matplotlib

matplotlib.use("Agg")

import pytest

from models import FEMALE, MALE, Person


def person(member_id, birth, parent=None, gender=MALE, **extra):
    return Person(id=member_id, name=member_id.title(), gender=gender, birth_date=birth, parent_id=parent, **extra)


@pytest.fixture
def lineage():
    """root -> son1 -> gson1 -> ggson1, plus son2 (younger brother of son1)."""
    return [
        person("root", "1900-01-01"),
        person("son1", "1930-01-01", "root"),
        person("son2", "1932-01-01", "root"),
        person("gson1", "1960-01-01", "son1"),
        person("ggson1", "1990-01-01", "gson1"),
    ]


@pytest.fixture
def clan(lineage):
    """The lineage plus daughters, a nephew line and an unrelated tree."""
    return lineage + [
        person("dau1", "1935-06-01", "root", FEMALE),
        person("dau2", "1938-02-01", "root", FEMALE),
        person("gson2", "1962-01-01", "son2"),
        person("gdau2", "1958-01-01", "son2", FEMALE),
        person("stranger", "1901-01-01"),
        person("stranger_son", "1931-01-01", "stranger"),
    ]


@pytest.fixture
def by_id(clan):
    return {m.id: m for m in clan}
