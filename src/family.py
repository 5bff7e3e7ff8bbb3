"""
In-memory member collection and the structural edits made on it.

Every edit replaces whole records (no partial patches) and returns the records
it changed, so a persistence layer can store exactly those.
"""

from dataclasses import dataclass
import logging
import random
import time
from typing import Callable

from graph import collect_descendants, generation_of, index_members
from models import MALE, Person, active_members
from parsing import parse_birth_date

logger = logging.getLogger("clanscroll.family")


class MemberNotFoundError(KeyError):
    """An edit named a member id that is not in the collection."""


@dataclass
class SearchFilters:
    name: str = ""
    generation: int | None = None
    birth_date_start: str | None = None
    birth_date_end: str | None = None


def generate_id() -> str:
    return f"M-{int(time.time() * 1000)}-{random.randint(0, 9999)}"


class FamilyRegistry:
    """
    Ordered collection of all members, soft-deleted ones included.

    `sink`, when given, is called with every changed record after an edit
    (e.g. MemberRepository.save).
    """

    def __init__(self, members: list[Person] | None = None, sink: Callable[[Person], object] | None = None):
        self.members: list[Person] = list(members or [])
        self.sink = sink

    # -- queries ------------------------------------------------------------

    def get(self, member_id: str) -> Person:
        for m in self.members:
            if m.id == member_id:
                return m
        raise MemberNotFoundError(member_id)

    def __contains__(self, member_id: str) -> bool:
        return any(m.id == member_id for m in self.members)

    def __len__(self) -> int:
        return len(self.members)

    def active(self) -> list[Person]:
        return active_members(self.members)

    def deleted(self) -> list[Person]:
        return [m for m in self.members if m.is_deleted]

    def search(self, filters: SearchFilters) -> list[Person]:
        """Active members matching every filter that is set."""
        active = self.active()
        by_id = index_members(active)
        start = parse_birth_date(filters.birth_date_start)
        end = parse_birth_date(filters.birth_date_end)
        needle = filters.name.strip().lower()

        results = []
        for m in active:
            if needle and needle not in m.name.lower():
                continue
            if filters.generation is not None and generation_of(m, by_id) != filters.generation:
                continue
            if start or end:
                birth = parse_birth_date(m.birth_date)
                if birth is None:
                    continue
                if start and birth < start:
                    continue
                if end and birth > end:
                    continue
            results.append(m)
        return results

    # -- edits --------------------------------------------------------------

    def _new_id(self) -> str:
        new_id = generate_id()
        while new_id in self:
            new_id = generate_id()
        return new_id

    def _put(self, person: Person) -> None:
        for i, m in enumerate(self.members):
            if m.id == person.id:
                self.members[i] = person
                return
        self.members.append(person)

    def _commit(self, changed: list[Person]) -> list[Person]:
        for person in changed:
            self._put(person)
        if self.sink is not None:
            for person in changed:
                self.sink(person)
        return changed

    def create_root(
        self,
        name: str,
        birth_date: str = "1000-01-01",
        address: str = "",
        biography: str | None = None,
    ) -> Person:
        """Start a new tree with a highlighted founding ancestor."""
        root = Person(
            id=self._new_id(),
            name=name,
            gender=MALE,
            birth_date=birth_date,
            address=address,
            parent_id=None,
            biography=biography,
            is_highlight=True,
        )
        logger.info(f"Created root {root.name} ({root.id})")
        return self._commit([root])[0]

    def add_child(self, parent_id: str, name: str = "New member") -> Person:
        """Add a child under `parent_id`; it inherits the parent's address."""
        parent = self.get(parent_id)
        child = Person(
            id=self._new_id(),
            name=name,
            gender=MALE,
            birth_date="",
            address=parent.address,
            parent_id=parent.id,
        )
        return self._commit([child])[0]

    def add_parent(self, child_id: str, name: str = "Unnamed ancestor") -> tuple[Person, Person]:
        """
        Insert a new ancestor above `child_id`.

        The ancestor takes over the child's previous parent link and the child
        is rewired to the ancestor. Returns (ancestor, updated child).
        """
        child = self.get(child_id)
        ancestor = Person(
            id=self._new_id(),
            name=name,
            gender=MALE,
            birth_date="",
            address=child.address,
            parent_id=child.parent_id,
        )
        updated_child = child.with_changes(parent_id=ancestor.id)
        self._commit([ancestor, updated_child])
        return ancestor, updated_child

    def update(self, person: Person) -> Person:
        """Replace the stored record with the same id."""
        self.get(person.id)
        return self._commit([person])[0]

    def soft_delete(self, member_id: str) -> list[Person]:
        """Mark a member and all of its active descendants deleted."""
        target = self.get(member_id)
        doomed = {target.id} | collect_descendants(target.id, self.active())
        changed = [m.with_changes(is_deleted=True) for m in self.members if m.id in doomed]
        logger.info(f"Soft-deleting {len(changed)} members under {target.name} ({target.id})")
        return self._commit(changed)

    def restore(self, member_id: str) -> Person:
        """Reactivate one member. Its descendants stay deleted."""
        member = self.get(member_id)
        return self._commit([member.with_changes(is_deleted=False)])[0]

    def import_members(self, members: list[Person]) -> list[Person]:
        """Replace the whole collection (snapshot import)."""
        self.members = []
        return self._commit(list(members))
